from streamchat.server.context import build_context, build_legacy_context
from streamchat.server.session.models import Message, Persona, PersonaExample

HISTORY = (
    Message(role="user", content="What is a wand?"),
    Message(role="assistant", content="A stick."),
    Message(role="user", content="Really?"),
)


def _roles_and_contents(messages):
    return [(message.role, message.content) for message in messages]


def test_history_only_without_persona():
    assert build_context(None, HISTORY) == list(HISTORY)


def test_persona_system_then_examples_then_history():
    persona = Persona(
        system="You are Merlin.",
        examples=(
            PersonaExample(user="u1", assistant="a1"),
            PersonaExample(user="u2", assistant="a2"),
        ),
    )

    result = build_context(persona, HISTORY)

    assert _roles_and_contents(result) == [
        ("system", "You are Merlin."),
        ("user", "u1"),
        ("assistant", "a1"),
        ("user", "u2"),
        ("assistant", "a2"),
        ("user", "What is a wand?"),
        ("assistant", "A stick."),
        ("user", "Really?"),
    ]


def test_empty_persona_adds_nothing():
    assert build_context(Persona(), HISTORY) == list(HISTORY)


def test_blank_example_halves_are_skipped():
    persona = Persona(
        examples=(
            PersonaExample(user="only user"),
            PersonaExample(assistant="only assistant"),
            PersonaExample(user="", assistant=""),
        )
    )

    result = build_context(persona, HISTORY[:1])

    assert _roles_and_contents(result) == [
        ("user", "only user"),
        ("assistant", "only assistant"),
        ("user", "What is a wand?"),
    ]


def test_build_context_is_pure():
    persona = Persona(system="sys", examples=(PersonaExample(user="u", assistant="a"),))
    history = list(HISTORY)

    first = build_context(persona, history)
    second = build_context(persona, history)

    assert first == second
    assert first is not second
    assert history == list(HISTORY)

    first.append(Message(role="user", content="mutated"))
    assert build_context(persona, history) == second


def test_legacy_context_always_starts_with_system_prompt():
    result = build_legacy_context("Be brief.", HISTORY[:1])

    assert _roles_and_contents(result) == [
        ("system", "Be brief."),
        ("user", "What is a wand?"),
    ]
