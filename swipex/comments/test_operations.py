# swipex/comments/test_operations.py
import itertools
import random

import pytest
from marshmallow import ValidationError

from swipex.comments.operations import (
    add_comment,
    add_reply,
    insert_comment,
    insert_reply,
    new_comment,
    prepare_add,
    prepare_like_toggle,
    set_like,
    toggle_like,
    toggle_like_with_result,
    validate_text,
)
from swipex.comments.tree import find_comment, find_duplicate_ids, walk
from swipex.models.comment import Comment


def node(comment_id, *replies, liked_by=()):
    return Comment(comment_id=comment_id, text="t", author_id="u0", liked_by=liked_by, replies=replies)


def test_add_reply_scenario():
    tree = (node("a"),)
    result, reply = add_reply(tree, "a", "hi", "u1")
    assert len(result) == 1
    assert result[0].comment_id == "a"
    added = result[0].replies[0]
    assert added is reply
    assert added.text == "hi"
    assert added.author_id == "u1"
    assert added.liked_by == ()
    assert added.replies == ()


def test_add_reply_appends_after_existing_replies():
    tree = (node("a", node("r1"), node("r2")),)
    result, reply = add_reply(tree, "a", "third", "u1")
    assert [r.comment_id for r in result[0].replies] == ["r1", "r2", reply.comment_id]


def test_add_reply_to_nested_reply():
    tree = (node("a", node("r1", node("r1x"))),)
    result, reply = add_reply(tree, "r1x", "deep", "u2")
    assert find_comment(result, "r1x").replies == (reply,)


def test_add_reply_missing_parent_is_noop():
    tree = (node("a"),)
    result, reply = add_reply(tree, "missing", "hi", "u1")
    assert reply is None
    assert [c.to_dict() for c in result] == [c.to_dict() for c in tree]


def test_toggle_like_scenario():
    tree = (node("a"),)
    liked = toggle_like(tree, "a", "u1")
    assert liked[0].liked_by == ("u1",)
    unliked = toggle_like(liked, "a", "u1")
    assert unliked[0].liked_by == ()


@pytest.mark.parametrize("target,user", [("a", "u1"), ("r1", "u2"), ("r1x", "u3"), ("b", "u9")])
def test_toggle_like_is_involution(target, user):
    tree = (node("a", node("r1", node("r1x"), liked_by=("u2", "u5"))), node("b", liked_by=("u1",)))
    twice = toggle_like(toggle_like(tree, target, user), target, user)
    assert [c.to_dict() for c in twice] == [c.to_dict() for c in tree]


def test_toggle_like_keeps_like_count_consistent():
    tree = (node("a", liked_by=("u1", "u2")),)
    result, updated = toggle_like_with_result(tree, "a", "u3")
    assert updated.like_count == 3
    assert updated.is_liked_by("u3")


def test_toggle_like_missing_comment():
    tree = (node("a"),)
    result, updated = toggle_like_with_result(tree, "missing", "u1")
    assert updated is None
    assert result is tree


def test_add_comment_is_newest_first():
    tree, first = add_comment((), "first", "u1")
    tree, second = add_comment(tree, "second", "u2")
    assert [c.text for c in tree] == ["second", "first"]
    assert tree[0] is second and tree[1] is first


def test_generated_ids_never_collide():
    rng = random.Random(7)
    tree = ()
    for _ in range(200):
        ids = [c.comment_id for c, _, _ in walk(tree)]
        if ids and rng.random() < 0.6:
            tree, _ = add_reply(tree, rng.choice(ids), "reply", "u1")
        else:
            tree, _ = add_comment(tree, "top", "u1")
    assert sum(1 for _ in walk(tree)) == 200
    assert find_duplicate_ids(tree) == set()


def test_new_comment_regenerates_colliding_id():
    ids = iter(["a", "a", "b"])
    comment = new_comment("hi", "u1", existing_ids={"a"}, id_factory=lambda: next(ids))
    assert comment.comment_id == "b"


def test_generated_id_is_128_bit_hex():
    comment = new_comment("hi", "u1")
    assert len(comment.comment_id) == 32
    int(comment.comment_id, 16)


def test_text_is_stripped():
    assert new_comment("  hello  ", "u1").text == "hello"


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
def test_empty_text_is_rejected(text):
    with pytest.raises(ValidationError):
        validate_text(text)
    with pytest.raises(ValidationError):
        add_comment((), text, "u1")


def test_text_length_limit():
    validate_text("x" * 10, max_length=10)
    with pytest.raises(ValidationError):
        validate_text("x" * 11, max_length=10)


def test_author_is_required():
    with pytest.raises(ValidationError):
        new_comment("hi", "")
    with pytest.raises(ValidationError):
        toggle_like((node("a"),), "a", "")


def test_operations_do_not_mutate_input():
    tree = (node("a", node("r1")),)
    before = [c.to_dict() for c in tree]
    add_comment(tree, "x", "u1")
    add_reply(tree, "r1", "x", "u1")
    toggle_like(tree, "r1", "u1")
    assert [c.to_dict() for c in tree] == before


def test_created_at_can_be_fixed():
    from datetime import datetime, timezone
    fixed = datetime(2025, 1, 1, tzinfo=timezone.utc)
    counter = itertools.count()
    comment = new_comment("hi", "u1", now=fixed, id_factory=lambda: f"id{next(counter)}")
    assert comment.created_at == fixed
    assert comment.comment_id == "id0"


def test_insert_existing_id_returns_tree_unchanged():
    tree = (node("a", node("a1")),)
    assert insert_comment(tree, node("a1")) == (tree, tree[0].replies[0])
    assert insert_comment(tree, node("a1"))[0] is tree
    new_tree, existing = insert_reply(tree, "a", node("a1"))
    assert new_tree is tree and existing is tree[0].replies[0]


def test_insert_reply_missing_parent():
    tree = (node("a"),)
    new_tree, reply = insert_reply(tree, "zzz", node("r"))
    assert new_tree is tree and reply is None


def test_set_like_already_in_state_is_noop():
    tree = (node("a", liked_by=("u1",)),)
    new_tree, target = set_like(tree, "a", "u1", True)
    assert new_tree is tree and target is tree[0]
    new_tree, target = set_like(tree, "a", "u1", False)
    assert target.liked_by == ()


def test_prepare_add_converges_when_reapplied():
    mutation = prepare_add("hi", "u1")
    first, comment = mutation((node("a"),))
    second, again = mutation(first)
    assert second is first
    assert again.comment_id == comment.comment_id
    # 다른 트리에 재적용해도 같은 노드가 들어갑니다.
    third, _ = mutation((node("b"),))
    assert [c.comment_id for c in third] == [comment.comment_id, "b"]


def test_prepare_add_reply_with_missing_parent():
    mutation = prepare_add("hi", "u1", parent_comment_id="zzz")
    tree = (node("a"),)
    assert mutation(tree) == (tree, None)


def test_prepare_like_toggle_keeps_first_decision():
    mutation = prepare_like_toggle("a", "u1")
    liked, target = mutation((node("a"),))
    assert target.is_liked_by("u1")
    # 재적용 시점에 이미 좋아요 상태라도 취소하지 않습니다.
    again, target = mutation(liked)
    assert again is liked and target.is_liked_by("u1")


def test_prepare_like_toggle_missing_target():
    mutation = prepare_like_toggle("zzz", "u1")
    tree = (node("a"),)
    assert mutation(tree) == (tree, None)
