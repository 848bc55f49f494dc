"""
Console Demo: Branching Conversation

Demonstrates:
- Parsing a conversation from raw node records
- Continue / option driven traversal
- Action handlers and replacement text
- Node tags

Run: python -m demos.console_demo
"""

from branchtalk.core import DialogueConfig, DialogueEvent, configure_logging
from branchtalk.dialog import ConsoleDialogueContext, DialogueSession


CONVERSATION = [
    {
        "title": "Intro",
        "tags": "location[tavern, night], music[lute]",
        "body": (
            "Barkeep: Evening, {player}. What'll it be? | actions([sound|door_creak])\n"
            "Barkeep: We've ale, and we've trouble.\n"
            "[[Ale, please|Ale]], [[Tell me about the trouble|Trouble]], [[Leave|END]]"
        ),
    },
    {
        "title": "Ale",
        "body": (
            "Barkeep: One ale for {player}. | actions([gold|-2])\n"
            "You drink in silence."
        ),
    },
    {
        "title": "Trouble",
        "body": (
            "Barkeep: Wolves on the north road. | actions([quest|wolves])\n"
            "| options([[I'll handle it|END]], [[Not my problem|Ale]])"
        ),
    },
]


def main():
    configure_logging("WARNING")

    context = ConsoleDialogueContext("console")
    session = DialogueSession.from_records(CONVERSATION, context, DialogueConfig())

    session.register_replacement("player", "Traveller")
    session.register_action("sound", lambda param: print(f"  (sound: {param})"))
    session.register_action("gold", lambda param: print(f"  (gold {param})"))
    session.register_action("quest", lambda param: print(f"  (quest started: {param})"))

    over = []
    session.events.subscribe(DialogueEvent.DIALOGUE_OVER, lambda e: over.append(True), weak=False)

    context.initialize_context()
    session.start_node("Intro")
    print(f"  [location: {', '.join(session.get_tag_values('location'))}]")

    while not over:
        line = context.current_line
        if line is not None and line.has_choices:
            answer = input("> ")
            if answer.isdigit():
                context.choose(int(answer))
        else:
            input("(press enter)")
            context.press_continue()

    session.finish(lambda: print("Goodbye."))


if __name__ == "__main__":
    main()
