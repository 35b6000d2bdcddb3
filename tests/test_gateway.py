from outreach.infrastructure.whatsapp import render_choice_prompt
from outreach.infrastructure.whatsapp.whatsapp_client import SeenMessageIds, parse_message_id


def test_render_choice_prompt():
    text = render_choice_prompt(
        "¿Qué deseas hacer ahora?",
        ["Ver más", "Contactar"],
        title="Información adicional",
        footer="Selecciona una opción",
    )

    assert text == (
        "*Información adicional*\n"
        "¿Qué deseas hacer ahora?\n"
        "\n"
        "1. Ver más\n"
        "2. Contactar\n"
        "\n"
        "_Selecciona una opción_"
    )


def test_render_choice_prompt_without_title_or_footer():
    assert render_choice_prompt("Elige", ["A"]) == "Elige\n\n1. A"


def test_parse_message_id():
    assert parse_message_id("false_573001112233@c.us_3EB0C4") == (False, "573001112233@c.us")
    assert parse_message_id("true_573001112233@c.us_ABCD") == (True, "573001112233@c.us")
    assert parse_message_id("garbage") == (False, "")
    assert parse_message_id("") == (False, "")


def test_seen_message_ids_are_bounded():
    seen = SeenMessageIds(limit=3)

    assert seen.add("a") is True
    assert seen.add("a") is False
    for msg_id in ("b", "c", "d"):
        seen.add(msg_id)

    assert len(seen) == 3
    assert "a" not in seen
    assert "d" in seen
    assert seen.add("a") is True
