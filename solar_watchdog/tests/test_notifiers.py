# solar_watchdog/tests/test_notifiers.py

from datetime import datetime, timezone

from solar_watchdog.config import HealthchecksConfig, TelegramConfig
from solar_watchdog.logging import ConsoleLog, get_logger
from solar_watchdog.services.notifiers.healthchecks import HealthchecksNotifier
from solar_watchdog.services.notifiers.telegram import TelegramNotifier
from solar_watchdog.tests.fakes import CONNECTION_ERROR, FakeSession


ConsoleLog(level="INFO", quiet=True).setup()
LOG = get_logger("notifier-test")

SEND_URL = "https://tg.test/botTOKEN/sendMessage"
PING_URL = "https://hc.test/ping/abc"


def _telegram(responses, chat_ids=("111", "222", "333")):
    cfg = TelegramConfig(token="TOKEN", chat_ids=tuple(chat_ids), api_url="https://tg.test/bot", timeout=4)
    session = FakeSession(responses, default=(200, {"ok": True}))
    return TelegramNotifier(cfg, LOG, session=session), session


# ---------------------------------------------------------------------------
# Telegram
# ---------------------------------------------------------------------------

def test_send_posts_once_per_chat():
    notifier, session = _telegram({})
    delivered = notifier.send("<b>hello</b>", html=True)

    assert delivered == 3
    assert sorted(c["json"]["chat_id"] for c in session.calls) == ["111", "222", "333"]
    for call in session.calls:
        assert call["url"] == SEND_URL
        assert call["json"]["text"] == "<b>hello</b>"
        assert call["json"]["parse_mode"] == "HTML"
        assert call["timeout"] == 4


def test_plain_text_omits_parse_mode():
    notifier, session = _telegram({}, chat_ids=("111",))
    notifier.send("plain")
    assert "parse_mode" not in session.calls[0]["json"]


def test_failing_chat_does_not_block_others():
    notifier, session = _telegram({
        (SEND_URL, "222"): (400, {"ok": False, "description": "Bad Request: chat not found"}),
        (SEND_URL, "333"): (CONNECTION_ERROR, None),
    })

    delivered = notifier.send("alert")

    assert delivered == 1
    assert len(session.calls) == 3


def test_malformed_error_body_is_contained():
    notifier, _ = _telegram({(SEND_URL, "111"): (500, ValueError)}, chat_ids=("111",))
    assert notifier.send("alert") == 0


def test_no_chats_sends_nothing():
    notifier, session = _telegram({}, chat_ids=())
    assert notifier.send("alert") == 0
    assert session.calls == []


def test_send_test_message():
    notifier, session = _telegram({}, chat_ids=("111",))
    notifier.send_test(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))
    assert "2024-06-01 12:00:00" in session.calls[0]["json"]["text"]


# ---------------------------------------------------------------------------
# Healthchecks
# ---------------------------------------------------------------------------

def test_ping_disabled_without_url():
    session = FakeSession()
    hc = HealthchecksNotifier(HealthchecksConfig(ping_url=None), LOG, session=session)
    assert hc.ping() is False
    assert session.calls == []


def test_ping_success():
    session = FakeSession({PING_URL: (200, None)})
    hc = HealthchecksNotifier(HealthchecksConfig(ping_url=PING_URL + "/", timeout=3), LOG, session=session)
    assert hc.ping() is True
    assert session.calls[0]["url"] == PING_URL
    assert session.calls[0]["timeout"] == 3


def test_ping_failures_are_swallowed():
    for response in [(500, None), (CONNECTION_ERROR, None)]:
        session = FakeSession({PING_URL: response})
        hc = HealthchecksNotifier(HealthchecksConfig(ping_url=PING_URL), LOG, session=session)
        assert hc.ping() is False


def test_ping_disabled_for_blank_url():
    session = FakeSession()
    hc = HealthchecksNotifier(HealthchecksConfig(ping_url=""), LOG, session=session)
    assert not hc.enabled
    assert hc.ping() is False
    assert session.calls == []
