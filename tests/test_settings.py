from pathlib import Path

from outreach.infrastructure.config import (
    AllowListSettings,
    ConversationSettings,
    ReminderSettings,
    Settings,
)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REMINDER_CATEGORIES", "1, 5")
    monkeypatch.setenv("REMINDER_WINDOW_MIN", "10")
    monkeypatch.setenv("REMINDERS_ENABLED", "no")
    monkeypatch.setenv("AFFIRMATIVE_PHRASES", "dale|de una")

    reminders = ReminderSettings()
    conversation = ConversationSettings()

    assert reminders.categories == frozenset({1, 5})
    assert reminders.window_min_minutes == 10
    assert reminders.window_max_minutes == 63
    assert reminders.enabled is False
    assert conversation.affirmative_phrases == ("dale", "de una")


def test_defaults(monkeypatch):
    for name in ("REMINDER_CATEGORIES", "REMINDER_WINDOW_MIN", "TIMEZONE", "COUNTRY_CODE"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.reminders.categories == frozenset({1, 3, 4, 6, 12, 13})
    assert settings.reminders.timezone == "America/Bogota"
    assert settings.whatsapp.country_code == "57"


def test_validate_clean(settings):
    assert settings.validate() == []


def test_validate_reports_problems(tmp_path):
    settings = Settings(
        allowlist=AllowListSettings(source_file=tmp_path / "missing.csv"),
        conversation=ConversationSettings(
            document_path=tmp_path / "missing.pdf",
            image_path=tmp_path / "missing.jpeg",
        ),
        reminders=ReminderSettings(
            window_min_minutes=70,
            window_max_minutes=60,
            confirmation_url_template="https://YOUR_DOMAIN/confirmar",
        ),
        database_file=Path(tmp_path / "outreach.db"),
    )

    issues = settings.validate()

    assert any("placeholder" in issue for issue in issues)
    assert any("{id}" in issue for issue in issues)
    assert any("REMINDER_WINDOW_MIN" in issue for issue in issues)
    assert any("missing.csv" in issue for issue in issues)
    assert sum("Media file not found" in issue for issue in issues) == 2
