import pytest

from skillswap.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from skillswap.schemas.swap import SwapAccept, SwapCancel, SwapReject, SwapRole, SwapStatus

from conftest import swap_request

async def test_accept_then_complete_increments_both_counters(container, make_user):
    u1 = await make_user("Uma")
    u2 = await make_user("Ravi")

    swap = await container.swaps.create(u1, swap_request(u2["id"], "Guitar", "Spanish"))
    assert swap["status"] == "pending"
    assert swap["skill_offered"]["name"] == "Guitar"
    assert swap["skill_requested"]["level"] == "intermediate"

    accepted = await container.swaps.accept(swap["id"], u2["id"])
    assert accepted["status"] == "accepted"

    completed = await container.swaps.complete(swap["id"], u1["id"])
    assert completed["status"] == "completed"
    assert completed["completed_at"] is not None

    assert (await container.users.find(u1["id"]))["swap_count"] == 1
    assert (await container.users.find(u2["id"]))["swap_count"] == 1

async def test_second_pending_request_to_same_recipient_conflicts(container, make_user):
    u1 = await make_user()
    u2 = await make_user()
    await container.swaps.create(u1, swap_request(u2["id"]))

    with pytest.raises(ConflictError):
        await container.swaps.create(u1, swap_request(u2["id"], "Piano", "French"))

    # the reverse direction is a different requester
    reverse = await container.swaps.create(u2, swap_request(u1["id"]))
    assert reverse["status"] == "pending"

async def test_new_request_allowed_once_previous_is_no_longer_pending(container, make_user):
    u1 = await make_user()
    u2 = await make_user()
    first = await container.swaps.create(u1, swap_request(u2["id"]))
    await container.swaps.reject(first["id"], u2["id"])

    second = await container.swaps.create(u1, swap_request(u2["id"]))
    assert second["id"] != first["id"]

async def test_non_participant_cannot_accept(container, make_user):
    u1, u2, u3 = await make_user(), await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))

    with pytest.raises(ForbiddenError):
        await container.swaps.accept(swap["id"], u3["id"])
    assert (await container.swaps.find(swap["id"]))["status"] == "pending"

async def test_requester_cannot_accept_or_reject_own_request(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))

    with pytest.raises(ForbiddenError):
        await container.swaps.accept(swap["id"], u1["id"])
    with pytest.raises(ForbiddenError):
        await container.swaps.reject(swap["id"], u1["id"])

async def test_cannot_request_swap_with_yourself(container, make_user):
    u1 = await make_user()
    with pytest.raises(ValidationError):
        await container.swaps.create(u1, swap_request(u1["id"]))

async def test_unknown_recipient_is_not_found(container, make_user):
    u1 = await make_user()
    with pytest.raises(NotFoundError):
        await container.swaps.create(u1, swap_request("missing-user"))

async def test_deactivated_recipient_is_not_found(container, make_user):
    u1 = await make_user()
    u2 = await make_user(is_active=False)
    with pytest.raises(NotFoundError):
        await container.swaps.create(u1, swap_request(u2["id"]))

async def test_accepting_an_accepted_request_is_invalid_state(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    await container.swaps.accept(swap["id"], u2["id"])

    with pytest.raises(InvalidStateError):
        await container.swaps.accept(swap["id"], u2["id"])

async def test_complete_twice_increments_once(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    await container.swaps.accept(swap["id"], u2["id"])
    completed = await container.swaps.complete(swap["id"], u2["id"])

    with pytest.raises(InvalidStateError):
        await container.swaps.complete(swap["id"], u1["id"])

    assert (await container.users.find(u1["id"]))["swap_count"] == 1
    assert (await container.users.find(u2["id"]))["swap_count"] == 1
    assert (await container.swaps.find(swap["id"]))["completed_at"] == completed["completed_at"]

async def test_pending_request_cannot_be_completed(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    with pytest.raises(InvalidStateError):
        await container.swaps.complete(swap["id"], u1["id"])
    assert (await container.users.find(u1["id"]))["swap_count"] == 0

@pytest.mark.parametrize("terminal_action", ["reject", "cancel", "complete"])
@pytest.mark.parametrize("attempt", ["accept", "reject", "cancel", "complete"])
async def test_terminal_states_reject_every_action(container, make_user, terminal_action, attempt):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    if terminal_action == "reject":
        await container.swaps.reject(swap["id"], u2["id"])
    elif terminal_action == "cancel":
        await container.swaps.cancel(swap["id"], u1["id"])
    else:
        await container.swaps.accept(swap["id"], u2["id"])
        await container.swaps.complete(swap["id"], u1["id"])
    before = await container.swaps.find(swap["id"])

    with pytest.raises(InvalidStateError):
        await getattr(container.swaps, attempt)(swap["id"], u2["id"])

    assert await container.swaps.find(swap["id"]) == before

async def test_cancel_from_accepted_stamps_cancelled_at(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    await container.swaps.accept(swap["id"], u2["id"])

    cancelled = await container.swaps.cancel(swap["id"], u2["id"], SwapCancel(cancel_reason="Schedule clash"))
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancel_reason"] == "Schedule clash"
    assert cancelled["cancelled_at"] is not None
    assert cancelled["completed_at"] is None

async def test_outsider_cannot_cancel_or_complete(container, make_user):
    u1, u2, u3 = await make_user(), await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    with pytest.raises(ForbiddenError):
        await container.swaps.cancel(swap["id"], u3["id"])
    await container.swaps.accept(swap["id"], u2["id"])
    with pytest.raises(ForbiddenError):
        await container.swaps.complete(swap["id"], u3["id"])

async def test_accept_and_reject_record_response(container, make_user):
    u1, u2 = await make_user(), await make_user()
    first = await container.swaps.create(u1, swap_request(u2["id"]))
    accepted = await container.swaps.accept(
        first["id"], u2["id"], SwapAccept(response_message="Sounds great", meeting_details="Zoom link")
    )
    assert accepted["response_message"] == "Sounds great"
    assert accepted["meeting_details"] == "Zoom link"

    second = await container.swaps.create(u2, swap_request(u1["id"]))
    rejected = await container.swaps.reject(second["id"], u1["id"], SwapReject(response_message="Busy"))
    assert rejected["response_message"] == "Busy"

async def test_stale_status_write_is_rejected(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    stale = await container.swaps.find(swap["id"])
    await container.swaps.accept(swap["id"], u2["id"])
    await container.swaps.complete(swap["id"], u1["id"])

    # A second writer that read the swap while it was still pending
    with pytest.raises(InvalidStateError):
        await container.swaps._transition(stale, "cancel")
    assert (await container.swaps.find(swap["id"]))["status"] == "completed"

async def test_create_notifies_recipient(container, make_user, notifier):
    u1, u2 = await make_user("Uma"), await make_user("Ravi")
    await container.swaps.create(u1, swap_request(u2["id"], "Guitar", "Spanish"))

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["to"] == u2["email"]
    assert "Guitar" in notifier.sent[0]["body"]

async def test_notification_failure_does_not_fail_create(container, make_user, notifier):
    notifier.fail = True
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    assert (await container.swaps.find(swap["id"]))["status"] == "pending"

async def test_counter_failure_keeps_completed_status(container, make_user, monkeypatch):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    await container.swaps.accept(swap["id"], u2["id"])

    async def broken_increment(user_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(container.users, "increment_swap_count", broken_increment)
    completed = await container.swaps.complete(swap["id"], u1["id"])

    assert completed["status"] == "completed"
    assert (await container.users.find(u1["id"]))["swap_count"] == 0

async def test_list_for_user_filters_by_role_and_status(container, make_user):
    me, a, b = await make_user(), await make_user(), await make_user()
    sent = await container.swaps.create(me, swap_request(a["id"]))
    received = await container.swaps.create(b, swap_request(me["id"]))
    await container.swaps.create(a, swap_request(b["id"]))
    await container.swaps.accept(received["id"], me["id"])

    all_mine = await container.swaps.list_for_user(me["id"])
    assert {s["id"] for s in all_mine.items} == {sent["id"], received["id"]}

    only_sent = await container.swaps.list_for_user(me["id"], SwapRole.SENT)
    assert [s["id"] for s in only_sent.items] == [sent["id"]]

    only_received = await container.swaps.list_for_user(me["id"], SwapRole.RECEIVED)
    assert [s["id"] for s in only_received.items] == [received["id"]]

    accepted = await container.swaps.list_for_user(me["id"], status=SwapStatus.ACCEPTED)
    assert [s["id"] for s in accepted.items] == [received["id"]]

async def test_list_for_user_paginates(container, make_user):
    me = await make_user()
    for _ in range(3):
        other = await make_user()
        await container.swaps.create(me, swap_request(other["id"]))

    page = await container.swaps.list_for_user(me["id"], page=2, limit=2)
    assert len(page.items) == 1
    assert page.pagination.total == 3
    assert page.pagination.total_pages == 2
    assert page.pagination.has_prev_page is True
    assert page.pagination.has_next_page is False

async def test_get_is_limited_to_participants(container, make_user):
    u1, u2, u3 = await make_user(), await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"]))
    assert (await container.swaps.get(swap["id"], u2["id"]))["id"] == swap["id"]
    with pytest.raises(ForbiddenError):
        await container.swaps.get(swap["id"], u3["id"])
    with pytest.raises(NotFoundError):
        await container.swaps.get("missing", u1["id"])

async def test_list_for_user_excludes_other_peoples_swaps(container, make_user):
    me, u2, u3, u4 = await make_user(), await make_user(), await make_user(), await make_user()
    mine = await container.swaps.create(me, swap_request(u2["id"]))
    await container.swaps.create(u3, swap_request(u4["id"]))

    result = await container.swaps.list_for_user(me["id"])
    assert [s["id"] for s in result.items] == [mine["id"]]
    assert result.pagination.total == 1

async def test_skills_for(container, make_user):
    u1, u2 = await make_user(), await make_user()
    swap = await container.swaps.create(u1, swap_request(u2["id"], offered="Chess", requested="Go"))

    skills = await container.swaps.skills_for([swap["id"], "missing"])

    assert list(skills) == [swap["id"]]
    assert skills[swap["id"]]["skill_offered"]["name"] == "Chess"
    assert skills[swap["id"]]["skill_requested"]["name"] == "Go"
