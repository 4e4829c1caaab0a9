"""
Tests for the command-line entry point and settings wiring.
"""

from collections.abc import Iterator

import pytest

from recruitment_status_sync.config import Settings, get_settings
from recruitment_status_sync.main import build_parser, main


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Drop cached settings so environment changes take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FINAL_ROUND_MARKERS", '["final", "hr"]')
    monkeypatch.setenv("SYSTEM_USER_ID", "7")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings(_env_file=None)

    assert settings.final_round_markers == ["final", "hr"]
    assert settings.system_user_id == 7
    assert settings.log_level == "DEBUG"


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.final_round_markers == ["final"]
    assert settings.system_user_id == 1


def test_parser_uses_database_url_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///tmp/recruitment.db")

    args = build_parser().parse_args(["recompute-candidate", "5", "--acting-user", "9"])

    assert args.database_url == "sqlite+aiosqlite:///tmp/recruitment.db"
    assert args.command == "recompute-candidate"
    assert args.candidate_id == 5
    assert args.acting_user == 9


def test_parser_rejects_unknown_entity_type() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["history", "Employee", "1"])


def test_init_db_then_query(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test the commands end to end against a file database."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'recruitment.db'}"

    main(["--database-url", url, "init-db"])
    assert (tmp_path / "recruitment.db").exists()

    main(["--database-url", url, "history", "Candidate", "1"])
    assert "->" not in capsys.readouterr().out

    with pytest.raises(SystemExit) as exc_info:
        main(["--database-url", url, "recompute-candidate", "1"])
    assert exc_info.value.code == 1
