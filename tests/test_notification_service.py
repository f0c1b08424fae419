import pytest

from skillswap.services.notification_service import EmailNotifier, Notifier

from conftest import RecordingNotifier

def test_notifier_requires_send():
    with pytest.raises(TypeError):
        Notifier()

async def test_swap_request_email_escapes_user_text():
    notifier = RecordingNotifier()
    delivered = await notifier.swap_requested(
        {"name": "<b>Eve</b>", "email": "eve@skillswap.io"},
        {"name": "Mallory <script>alert(1)</script>"},
        "Guitar & Bass",
        '<img src="x">',
    )

    assert delivered is True
    body = notifier.sent[0]["body"]
    assert "&lt;b&gt;Eve&lt;/b&gt;" in body
    assert "&lt;script&gt;" in body and "<script>" not in body
    assert "Guitar &amp; Bass" in body
    assert "&lt;img src=&quot;x&quot;&gt;" in body

async def test_broadcast_escapes_title_and_message():
    notifier = RecordingNotifier()
    delivered = await notifier.broadcast(["a@skillswap.io", "b@skillswap.io"], "Q&A <today>", "<i>Join</i>")

    assert delivered == 2
    assert notifier.sent[0]["subject"] == "Q&A <today>"
    assert "<h2>Q&amp;A &lt;today&gt;</h2>" in notifier.sent[0]["body"]
    assert "<p>&lt;i&gt;Join&lt;/i&gt;</p>" in notifier.sent[0]["body"]

async def test_failed_delivery_is_counted_not_raised():
    notifier = RecordingNotifier()
    notifier.fail = True
    assert await notifier.broadcast(["a@skillswap.io"], "Hello", "Hi") == 0

async def test_email_notifier_skips_without_smtp_host(settings):
    # smtp_host is empty in the test settings
    await EmailNotifier(settings).send("a@skillswap.io", "Hello", "<p>Hi</p>")
