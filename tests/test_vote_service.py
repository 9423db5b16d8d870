import threading

import pytest

from fillahole.models.report import VoteDirection
from fillahole.services.report_service import ReportNotFoundError
from fillahole.services.vote_service import cast_vote, compute_vote_update

UP = VoteDirection.UP
DOWN = VoteDirection.DOWN


def _report(upvotes=0, upvoters=(), downvoters=()):
    return {"engagement": {"upvotes": upvotes, "upvoters": list(upvoters), "downvoters": list(downvoters)}}


@pytest.mark.parametrize("report,direction,expected_upvotes,expected_vote", [
    (_report(), UP, 1, UP),
    (_report(), DOWN, -1, DOWN),
    (_report(1, upvoters=["u"]), UP, 0, None),
    (_report(-1, downvoters=["u"]), DOWN, 0, None),
    (_report(-1, downvoters=["u"]), UP, 1, UP),
    (_report(1, upvoters=["u"]), DOWN, -1, DOWN),
])
def test_vote_arithmetic(report, direction, expected_upvotes, expected_vote):
    updates, upvotes, user_vote = compute_vote_update(report, "u", direction)

    assert upvotes == expected_upvotes
    assert updates["engagement.upvotes"] == expected_upvotes
    assert user_vote == expected_vote


def test_switching_moves_user_between_lists():
    updates, _, _ = compute_vote_update(_report(1, upvoters=["u", "v"]), "u", DOWN)
    assert updates["engagement.upvoters"] == ["v"]
    assert updates["engagement.downvoters"] == ["u"]


def test_cast_vote_sequence(ctx, put_report, db):
    put_report("r1")

    assert cast_vote(ctx, "r1", "alice", UP).upvotes == 1
    assert cast_vote(ctx, "r1", "bob", DOWN).upvotes == 0
    assert cast_vote(ctx, "r1", "bob", UP).upvotes == 2
    result = cast_vote(ctx, "r1", "alice", UP)
    assert result.upvotes == 1
    assert result.user_vote is None

    engagement = db.collection("reports").document("r1").get().to_dict()["engagement"]
    assert engagement["upvoters"] == ["bob"]
    assert engagement["downvoters"] == []


def test_concurrent_votes_are_not_lost(ctx, put_report, db):
    put_report("r1")
    voters = [f"user{i}" for i in range(25)]

    threads = [threading.Thread(target=cast_vote, args=(ctx, "r1", v, UP)) for v in voters]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    engagement = db.collection("reports").document("r1").get().to_dict()["engagement"]
    assert engagement["upvotes"] == 25
    assert sorted(engagement["upvoters"]) == sorted(voters)


def test_vote_on_missing_report(ctx):
    with pytest.raises(ReportNotFoundError):
        cast_vote(ctx, "nope", "alice", UP)


def test_vote_on_hidden_report_looks_missing(ctx, put_report):
    put_report("r1", author_id="alice", decision="FLAGGED")

    with pytest.raises(ReportNotFoundError):
        cast_vote(ctx, "r1", "bob", UP)
    assert cast_vote(ctx, "r1", "alice", UP).upvotes == 1
