from speech_relay.schemas.control import parse_control_message
from speech_relay.services.session import SessionState


def test_parse_full_config_message() -> None:
    message = parse_control_message('{"type": "config", "source": "zh", "target": "ru"}')

    assert message is not None
    assert message.source == "zh"
    assert message.target == "ru"


def test_parse_ignores_unknown_fields() -> None:
    message = parse_control_message('{"type": "config", "source": "ru", "voice": "x"}')

    assert message is not None
    assert message.source == "ru"
    assert message.target is None


def test_parse_rejects_other_types_and_garbage() -> None:
    assert parse_control_message('{"type": "ping"}') is None
    assert parse_control_message("{not json") is None
    assert parse_control_message("plain text") is None
    assert parse_control_message("42") is None
    assert parse_control_message('{"source": "zh"}') is None


def test_null_fields_leave_session_unchanged() -> None:
    session = SessionState(source_language="zh", target_language="ru")
    message = parse_control_message('{"type": "config", "source": null, "target": null}')

    assert message is not None
    session.apply(message)

    assert session == SessionState(source_language="zh", target_language="ru")


def test_session_defaults() -> None:
    session = SessionState()

    assert session.source_language == "en"
    assert session.target_language == "en"
