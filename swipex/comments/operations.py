# swipex/comments/operations.py
"""
댓글 트리에 대한 변경 연산 (순수 함수)

- add_comment: 최상위 댓글을 맨 앞에 추가 (최신순 노출)
- add_reply:   부모 댓글의 replies 맨 뒤에 추가 (대화 순서 유지)
- toggle_like: liked_by에 사용자를 추가/제거
- set_like:    좋아요 상태를 지정한 값으로 맞춤
- prepare_add / prepare_like_toggle: 저장소 재시도에도 결과가 한 번만 반영되는 변경 함수

입력 검증은 저장소 I/O보다 먼저 수행되며, 실패 시 marshmallow.ValidationError를 던집니다.
"""

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Collection, List, Optional, Sequence, Tuple

from marshmallow import ValidationError

from swipex.comments.tree import CommentIndex, collect_ids, find_comment, modify_comment_with_result
from swipex.models.comment import Comment
from swipex.utils.datetime_utils import DateTimeUtils

DEFAULT_MAX_LENGTH = 1000


def generate_comment_id() -> str:
    """128비트 난수 기반 ID. 별도의 서버 측 중복 확인 없이 충돌 확률을 무시할 수 있습니다."""
    return uuid.uuid4().hex


def validate_text(text: Optional[str], max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """댓글 본문을 검증하고 앞뒤 공백을 제거한 값을 반환합니다."""
    cleaned = (text or '').strip()
    if not cleaned:
        raise ValidationError({'text': ["댓글 내용을 입력해주세요."]})
    if len(cleaned) > max_length:
        raise ValidationError({'text': [f"댓글은 {max_length}자 이하여야 합니다."]})
    return cleaned


def new_comment(text: str, author_id: str,
                existing_ids: Collection[str] = (),
                now: Optional[datetime] = None,
                id_factory: Callable[[], str] = generate_comment_id,
                max_length: int = DEFAULT_MAX_LENGTH) -> Comment:
    """
    새 댓글 노드를 만듭니다. 생성된 ID가 전달받은 트리의 ID와 겹치면 다시 생성합니다.
    """
    if not author_id:
        raise ValidationError({'author_id': ["작성자 정보가 필요합니다."]})
    cleaned = validate_text(text, max_length)

    comment_id = id_factory()
    while comment_id in existing_ids:
        comment_id = id_factory()

    return Comment(
        comment_id=comment_id,
        text=cleaned,
        author_id=author_id,
        created_at=now or DateTimeUtils.now(),
    )


def insert_comment(comments: Sequence[Comment], comment: Comment) -> Tuple[Sequence[Comment], Comment]:
    """
    이미 만들어진 댓글 노드를 최상위 맨 앞에 추가합니다.
    같은 commentId가 이미 트리에 있으면 입력 트리를 그대로 반환합니다.
    """
    existing = find_comment(comments, comment.comment_id)
    if existing is not None:
        return comments, existing
    return (comment,) + tuple(comments), comment


def insert_reply(comments: Sequence[Comment], parent_comment_id: str,
                 reply: Comment) -> Tuple[Sequence[Comment], Optional[Comment]]:
    """
    이미 만들어진 답글 노드를 부모 댓글의 replies 끝에 추가합니다.
    - 같은 commentId가 이미 트리에 있으면 입력 트리와 기존 노드를 반환합니다.
    - 부모가 트리에 없으면 입력 트리와 None을 반환합니다.
    """
    index = CommentIndex(comments)
    if reply.comment_id in index:
        return comments, index.get(reply.comment_id)
    if parent_comment_id not in index:
        return comments, None
    new_comments, applied = modify_comment_with_result(
        comments,
        parent_comment_id,
        lambda parent: replace(parent, replies=parent.replies + (reply,)),
    )
    return new_comments, (reply if applied else None)


def add_comment(comments: Sequence[Comment], text: str, author_id: str,
                **kwargs) -> Tuple[Tuple[Comment, ...], Comment]:
    """새 최상위 댓글을 맨 앞에 추가한 트리와 생성된 댓글을 반환합니다."""
    comment = new_comment(text, author_id, existing_ids=collect_ids(comments), **kwargs)
    return (comment,) + tuple(comments), comment


def add_reply(comments: Sequence[Comment], parent_comment_id: str, text: str, author_id: str,
              **kwargs) -> Tuple[Sequence[Comment], Optional[Comment]]:
    """
    부모 댓글의 replies 끝에 답글을 추가합니다.
    부모가 트리에 없으면 원래 트리와 None을 반환합니다.
    """
    reply = new_comment(text, author_id, existing_ids=collect_ids(comments), **kwargs)
    return insert_reply(comments, parent_comment_id, reply)


def set_like(comments: Sequence[Comment], comment_id: str, user_id: str,
             liked: bool) -> Tuple[Sequence[Comment], Optional[Comment]]:
    """
    대상 댓글의 좋아요 상태를 liked로 맞춥니다.
    이미 그 상태라면 입력 트리와 기존 노드를 그대로 반환합니다. 대상이 없으면 None.
    """
    if not user_id:
        raise ValidationError({'user_id': ["사용자 정보가 필요합니다."]})

    target = find_comment(comments, comment_id)
    if target is None:
        return comments, None
    if target.is_liked_by(user_id) == liked:
        return comments, target

    updated = []

    def _set(node: Comment) -> Comment:
        if liked:
            liked_by = node.liked_by + (user_id,)
        else:
            liked_by = tuple(uid for uid in node.liked_by if uid != user_id)
        updated.append(replace(node, liked_by=liked_by))
        return updated[0]

    new_comments, _ = modify_comment_with_result(comments, comment_id, _set)
    return new_comments, updated[0]


def toggle_like(comments: Sequence[Comment], comment_id: str, user_id: str) -> Sequence[Comment]:
    """
    대상 댓글의 liked_by에서 user_id를 추가하거나 제거합니다.
    같은 사용자로 두 번 호출하면 원래 트리와 동일해집니다.
    """
    new_comments, _ = toggle_like_with_result(comments, comment_id, user_id)
    return new_comments


def toggle_like_with_result(comments: Sequence[Comment], comment_id: str,
                            user_id: str) -> Tuple[Sequence[Comment], Optional[Comment]]:
    """toggle_like와 같지만 변경된 노드도 함께 반환합니다. 대상이 없으면 None."""
    if not user_id:
        raise ValidationError({'user_id': ["사용자 정보가 필요합니다."]})
    target = find_comment(comments, comment_id)
    if target is None:
        return comments, None
    return set_like(comments, comment_id, user_id, not target.is_liked_by(user_id))


# =====================================================================================
# 재시도에 안전한 변경 함수
#
# CommentTreeSync.apply는 충돌이나 일시 장애가 나면 같은 변경 함수를 최신 트리에 다시 적용합니다.
# 커밋이 반영된 뒤 응답만 실패한 경우에도 재적용되므로, 아래 함수들은 첫 적용 때 결정한 내용
# (새 댓글 노드, 좋아요 목표 상태)을 기억해 두고 이후 호출에서는 같은 결과에 수렴합니다.
# =====================================================================================

def prepare_add(text: str, author_id: str, parent_comment_id: Optional[str] = None,
                **kwargs) -> Callable[[Sequence[Comment]], Tuple[Sequence[Comment], Optional[Comment]]]:
    """
    댓글(또는 답글) 작성 변경 함수를 만듭니다.
    노드는 처음 적용될 때 그 시점 트리의 ID와 겹치지 않게 한 번만 생성됩니다.
    """
    pending: List[Comment] = []

    def mutation(comments: Sequence[Comment]):
        if not pending:
            pending.append(new_comment(text, author_id, existing_ids=collect_ids(comments), **kwargs))
        if parent_comment_id:
            return insert_reply(comments, parent_comment_id, pending[0])
        return insert_comment(comments, pending[0])

    return mutation


def prepare_like_toggle(comment_id: str, user_id: str
                        ) -> Callable[[Sequence[Comment]], Tuple[Sequence[Comment], Optional[Comment]]]:
    """
    좋아요 토글 변경 함수를 만듭니다.
    좋아요/취소 여부는 저장소에서 처음 읽은 트리 기준으로 한 번만 정하고,
    재적용 때는 그 목표 상태로 맞추기만 합니다.
    """
    decided: List[bool] = []

    def mutation(comments: Sequence[Comment]):
        if not decided:
            target = find_comment(comments, comment_id)
            if target is None:
                return comments, None
            decided.append(not target.is_liked_by(user_id))
        return set_like(comments, comment_id, user_id, decided[0])

    return mutation
