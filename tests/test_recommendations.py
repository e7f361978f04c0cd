"""
Friend-to-friend recommendations: who may send, status changes, notes and stats.
"""
from __future__ import annotations

import pytest

from mediashelf.core.constants import DIRECTION_SENT, REC_CONSUMED, REC_HIT, REC_MISS, REC_PENDING
from mediashelf.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from mediashelf.db.repositories import connections as connections_repo
from mediashelf.db.repositories import recommendations as recs_repo

FIGHT_CLUB = {"external_id": "550", "media_type": "movie", "title": "Fight Club", "sent_message": " you'll love it "}
BREAKING_BAD = {"external_id": "1396", "media_type": "tv", "title": "Breaking Bad"}
DUNE = {"external_id": "B00B7NPRY8", "media_type": "book", "title": "Dune", "recommendation_type": "read"}


@pytest.fixture()
def friends(session, make_user):
    async def _make():
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        await connections_repo.connect(session, alice.id, bob.id)
        return alice.id, bob.id

    return _make


@pytest.mark.asyncio
async def test_send_and_list(session, friends):
    alice, bob = await friends()

    rec = await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)
    assert rec.status == REC_PENDING
    assert rec.recommendation_type == "watch"
    assert rec.sent_message == "you'll love it"
    assert rec.consumed_at is None

    received = await recs_repo.get_recommendations(session, bob)
    sent = await recs_repo.get_recommendations(session, alice, DIRECTION_SENT)
    assert [r.id for r in received] == [rec.id]
    assert [r.id for r in sent] == [rec.id]
    assert await recs_repo.get_recommendations(session, alice) == []


@pytest.mark.asyncio
async def test_only_to_connections(session, make_user):
    alice = await make_user()
    stranger = await make_user()

    with pytest.raises(PermissionDeniedError):
        await recs_repo.send_recommendation(session, alice.id, stranger.id, FIGHT_CLUB)
    with pytest.raises(ValidationError):
        await recs_repo.send_recommendation(session, alice.id, alice.id, FIGHT_CLUB)


@pytest.mark.asyncio
async def test_duplicate_and_bad_input(session, friends):
    alice, bob = await friends()
    await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)

    with pytest.raises(ValidationError) as exc_info:
        await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)
    assert exc_info.value.user_message == "You already recommended this to them"

    # the other direction is a different recommendation
    await recs_repo.send_recommendation(session, bob, alice, FIGHT_CLUB)

    with pytest.raises(ValidationError):
        await recs_repo.send_recommendation(session, alice, bob, {**BREAKING_BAD, "recommendation_type": "binge"})
    with pytest.raises(ValidationError):
        await recs_repo.send_recommendation(session, alice, bob, {**BREAKING_BAD, "sent_message": "x" * 501})


@pytest.mark.asyncio
async def test_filters(session, friends, make_user):
    alice, bob = await friends()
    carol = (await make_user("Carol")).id
    await connections_repo.connect(session, carol, bob)

    movie = await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)
    show = await recs_repo.send_recommendation(session, alice, bob, BREAKING_BAD)
    book = await recs_repo.send_recommendation(session, carol, bob, DUNE)
    await recs_repo.update_status(session, bob, show.id, REC_HIT)

    by_type = await recs_repo.get_recommendations(session, bob, media_type="movie")
    assert [r.id for r in by_type] == [movie.id]

    by_status = await recs_repo.get_recommendations(session, bob, status=REC_PENDING)
    assert {r.id for r in by_status} == {movie.id, book.id}

    by_sender = await recs_repo.get_recommendations(session, bob, from_user_id=carol)
    assert [r.id for r in by_sender] == [book.id]

    with pytest.raises(ValidationError):
        await recs_repo.get_recommendations(session, bob, direction="sideways")
    with pytest.raises(ValidationError):
        await recs_repo.get_recommendations(session, bob, status="maybe")


@pytest.mark.asyncio
async def test_status_changes_belong_to_recipient(session, friends):
    alice, bob = await friends()
    rec = await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)

    with pytest.raises(PermissionDeniedError):
        await recs_repo.update_status(session, alice, rec.id, REC_HIT)

    rec = await recs_repo.update_status(session, bob, rec.id, REC_CONSUMED)
    assert rec.consumed_at is not None

    rec = await recs_repo.update_status(session, bob, rec.id, REC_PENDING)
    assert rec.consumed_at is None

    with pytest.raises(ValidationError):
        await recs_repo.update_status(session, bob, rec.id, "loved")
    with pytest.raises(NotFoundError):
        await recs_repo.update_status(session, bob, rec.id + 100, REC_HIT)


@pytest.mark.asyncio
async def test_notes_per_side(session, friends):
    alice, bob = await friends()
    rec = await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)

    rec = await recs_repo.update_sender_note(session, alice, rec.id, "told Bob on Friday")
    rec = await recs_repo.update_recipient_note(session, bob, rec.id, "after exams")
    assert (rec.sender_note, rec.recipient_note) == ("told Bob on Friday", "after exams")

    with pytest.raises(PermissionDeniedError):
        await recs_repo.update_sender_note(session, bob, rec.id, "nope")
    with pytest.raises(PermissionDeniedError):
        await recs_repo.update_recipient_note(session, alice, rec.id, "nope")


@pytest.mark.asyncio
async def test_either_side_may_delete(session, friends, make_user):
    alice, bob = await friends()
    outsider = (await make_user()).id
    first = await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)
    second = await recs_repo.send_recommendation(session, alice, bob, BREAKING_BAD)

    with pytest.raises(NotFoundError):
        await recs_repo.delete_recommendation(session, outsider, first.id)

    await recs_repo.delete_recommendation(session, alice, first.id)
    await recs_repo.delete_recommendation(session, bob, second.id)
    assert await recs_repo.get_recommendations(session, bob) == []


@pytest.mark.asyncio
async def test_friend_and_quick_stats(session, friends, make_user):
    alice, bob = await friends()
    carol = (await make_user("Carol")).id
    await connections_repo.connect(session, carol, bob)

    hit = await recs_repo.send_recommendation(session, alice, bob, FIGHT_CLUB)
    miss = await recs_repo.send_recommendation(session, alice, bob, BREAKING_BAD)
    await recs_repo.send_recommendation(session, carol, bob, DUNE)
    await recs_repo.send_recommendation(session, bob, alice, DUNE)
    await recs_repo.update_status(session, bob, hit.id, REC_HIT)
    await recs_repo.update_status(session, bob, miss.id, REC_MISS)

    stats = {s.user_id: s for s in await recs_repo.get_friends_with_recommendations(session, bob)}
    assert stats[alice].display_name == "Alice"
    assert (stats[alice].total_count, stats[alice].hit_count, stats[alice].miss_count, stats[alice].pending_count) == (2, 1, 1, 0)
    assert (stats[carol].total_count, stats[carol].pending_count) == (1, 1)

    quick = await recs_repo.get_quick_stats(session, bob)
    assert (quick.hits, quick.misses, quick.queue, quick.sent) == (1, 1, 1, 1)

    movies_only = await recs_repo.get_quick_stats(session, bob, media_type="movie")
    assert (movies_only.hits, movies_only.queue, movies_only.sent) == (1, 0, 0)
