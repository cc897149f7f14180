# swipex/comments/test_sync.py
import logging

import pytest

from swipex.comments.operations import (
    add_comment,
    add_reply,
    prepare_add,
    prepare_like_toggle,
    toggle_like_with_result,
)
from swipex.comments.sync import CommentTreeSync
from swipex.conftest import make_comment_doc, make_listing
from swipex.core.exceptions import CommentTreeConflictError, ListingNotFoundError, StoreTransportError


@pytest.fixture
def sync(store):
    return CommentTreeSync(store, deadline=2.0, initial_delay=0.001, max_delay=0.01)


def test_load_reads_tree_and_version(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a', replies=[make_comment_doc('b')])],
                                              commentsVersion=3))
    snapshot = sync.load('L1')
    assert snapshot.version == 3
    assert [c.comment_id for c in snapshot.comments] == ['a']
    assert snapshot.comments[0].replies[0].comment_id == 'b'


def test_load_legacy_listing_without_comments(store, sync):
    data = make_listing('L1')
    del data['comments']
    store.seed('listings', 'L1', data)
    snapshot = sync.load('L1')
    assert snapshot.comments == ()
    assert snapshot.version == 0


def test_load_missing_listing(sync):
    with pytest.raises(ListingNotFoundError):
        sync.load('nope')


def test_replace_writes_whole_tree_and_bumps_version(store, sync):
    store.seed('listings', 'L1', make_listing('L1'))
    tree, _ = add_comment((), "hello", "u1")
    assert sync.replace('L1', tree, 0) == 1
    raw = store.raw('listings', 'L1')
    assert raw['commentsVersion'] == 1
    assert raw['comments'][0]['text'] == "hello"
    assert raw['comments'][0]['userId'] == "u1"


def test_replace_rejects_stale_version(store, sync):
    store.seed('listings', 'L1', make_listing('L1', commentsVersion=2))
    with pytest.raises(CommentTreeConflictError):
        sync.replace('L1', (), 1)


def test_replace_on_deleted_listing(sync):
    with pytest.raises(ListingNotFoundError):
        sync.replace('gone', (), 0)


def test_apply_reapplies_mutation_after_concurrent_write(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))

    def concurrent_reply(s):
        # 다른 클라이언트가 먼저 답글을 기록한 상황
        raw = s.raw('listings', 'L1')
        raw['comments'][0]['replies'].append(make_comment_doc('other', text="from another client", user_id='u9'))
        raw['commentsVersion'] = 1

    store.before_write = concurrent_reply
    snapshot, reply = sync.apply('L1', lambda tree: add_reply(tree, 'a', "mine", 'u1'))

    assert snapshot.version == 2
    replies = store.raw('listings', 'L1')['comments'][0]['replies']
    # 두 답글 모두 보존되어야 합니다 (last-writer-wins로 덮어쓰지 않음).
    assert [r['text'] for r in replies] == ["from another client", "mine"]
    assert replies[1]['commentId'] == reply.comment_id


def test_apply_like_uses_authoritative_state(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))

    def concurrent_like(s):
        raw = s.raw('listings', 'L1')
        raw['comments'][0]['likes'] = ['u1']
        raw['commentsVersion'] = 1

    store.before_write = concurrent_like
    snapshot, updated = sync.apply('L1', lambda tree: toggle_like_with_result(tree, 'a', 'u1'))
    # 최신 트리에서 이미 좋아요 상태였으므로 토글 결과는 취소입니다.
    assert updated.liked_by == ()
    assert store.raw('listings', 'L1')['comments'][0]['likes'] == []


def test_apply_noop_does_not_write(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))
    snapshot, result = sync.apply('L1', lambda tree: toggle_like_with_result(tree, 'missing', 'u1'))
    assert result is None
    assert 'compare_and_set' not in store.calls
    assert store.raw('listings', 'L1').get('commentsVersion') is None


def test_apply_retries_transient_failure(store, sync):
    store.seed('listings', 'L1', make_listing('L1'))
    store.fail_next(2)
    snapshot, comment = sync.apply('L1', lambda tree: add_comment(tree, "hi", 'u1'))
    assert snapshot.version == 1
    assert len(store.raw('listings', 'L1')['comments']) == 1


def test_apply_does_not_retry_permanent_failure(store, sync):
    store.seed('listings', 'L1', make_listing('L1'))
    store.fail_next(1, permanent=True)
    with pytest.raises(StoreTransportError):
        sync.apply('L1', lambda tree: add_comment(tree, "hi", 'u1'))
    assert store.calls == ['get_document']
    assert store.raw('listings', 'L1')['comments'] == []


def test_apply_missing_listing_is_not_retried(store, sync):
    with pytest.raises(ListingNotFoundError):
        sync.apply('nope', lambda tree: add_comment(tree, "hi", 'u1'))
    assert store.calls == ['get_document']


def test_apply_gives_up_after_deadline(store):
    sync = CommentTreeSync(store, deadline=0.05, initial_delay=0.01, max_delay=0.01)
    store.seed('listings', 'L1', make_listing('L1'))
    store.fail_next(10_000)
    with pytest.raises(StoreTransportError):
        sync.apply('L1', lambda tree: add_comment(tree, "hi", 'u1'))
    assert store.raw('listings', 'L1')['comments'] == []



def test_replace_second_writer_with_same_version_conflicts(store, sync):
    store.seed('listings', 'L1', make_listing('L1'))
    tree_a, _ = add_comment((), "from A", "uA")
    tree_b, _ = add_comment((), "from B", "uB")

    assert sync.replace('L1', tree_a, 0) == 1
    with pytest.raises(CommentTreeConflictError):
        sync.replace('L1', tree_b, 0)

    raw = store.raw('listings', 'L1')
    assert [c['text'] for c in raw['comments']] == ["from A"]
    assert raw['commentsVersion'] == 1


def test_apply_add_after_lost_commit_ack_inserts_once(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))
    store.fail_after_commit(1)

    snapshot, comment = sync.apply('L1', prepare_add("hi", 'u1'))

    raw = store.raw('listings', 'L1')
    assert [c['text'] for c in raw['comments']] == ["hi", "hello"]
    assert raw['comments'][0]['commentId'] == comment.comment_id
    assert raw['commentsVersion'] == 1
    assert snapshot.version == 1
    assert store.calls.count('compare_and_set') == 1


def test_apply_reply_after_lost_commit_ack_inserts_once(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))
    store.fail_after_commit(1)

    snapshot, reply = sync.apply('L1', prepare_add("mine", 'u1', parent_comment_id='a'))

    replies = store.raw('listings', 'L1')['comments'][0]['replies']
    assert [r['commentId'] for r in replies] == [reply.comment_id]
    assert store.calls.count('compare_and_set') == 1


def test_apply_like_after_lost_commit_ack_stays_liked(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))
    store.fail_after_commit(1)

    snapshot, updated = sync.apply('L1', prepare_like_toggle('a', 'u1'))

    assert updated.is_liked_by('u1')
    assert store.raw('listings', 'L1')['comments'][0]['likes'] == ['u1']
    assert store.calls.count('compare_and_set') == 1


def test_apply_like_keeps_first_decision_after_concurrent_same_like(store, sync):
    store.seed('listings', 'L1', make_listing('L1', comments=[make_comment_doc('a')]))

    def same_like_from_other_device(s):
        raw = s.raw('listings', 'L1')
        raw['comments'][0]['likes'] = ['u1']
        raw['commentsVersion'] = 1

    store.before_write = same_like_from_other_device
    snapshot, updated = sync.apply('L1', prepare_like_toggle('a', 'u1'))

    # 처음 읽은 트리 기준으로 '좋아요'로 결정했으므로 재시도에서 취소로 뒤집지 않습니다.
    assert updated.is_liked_by('u1')
    assert store.raw('listings', 'L1')['comments'][0]['likes'] == ['u1']
    assert snapshot.version == 1


def test_apply_on_tree_with_duplicate_ids_changes_first_match(store, sync, caplog):
    store.seed('listings', 'L1', make_listing('L1', comments=[
        make_comment_doc('a', replies=[make_comment_doc('dup')]),
        make_comment_doc('dup'),
    ]))

    with caplog.at_level(logging.WARNING):
        snapshot, updated = sync.apply('L1', prepare_like_toggle('dup', 'u1'))

    raw = store.raw('listings', 'L1')
    assert raw['comments'][0]['replies'][0]['likes'] == ['u1']
    assert raw['comments'][1]['likes'] == []
    assert raw['commentsVersion'] == 1
    assert "중복된 commentId" in caplog.text
    assert "중복 commentId가 포함된 트리를 기록합니다" in caplog.text
