# swipex/models/comment.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Tuple

from swipex.core.exceptions import MalformedCommentError
from swipex.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    """순서를 유지하면서 중복을 제거합니다."""
    return tuple(dict.fromkeys(values))


@dataclass(frozen=True, eq=False)
class Comment:
    """
    listing 문서의 `comments` 필드에 내장되는 재귀적 댓글 구조.

    - 동등성/해시는 comment_id만으로 판단합니다. 구조 전체 비교는 to_dict()를 사용합니다.
    - 변경 불가능한 값 객체이므로 수정은 dataclasses.replace로 새 노드를 만듭니다.
    - 좋아요 수는 별도 카운터 없이 항상 len(liked_by)입니다.
    """
    comment_id: str
    text: str
    author_id: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    liked_by: Tuple[str, ...] = ()
    replies: Tuple['Comment', ...] = ()

    def __post_init__(self):
        # liked_by는 집합 의미를 가지므로 생성 시점에 중복을 제거합니다.
        object.__setattr__(self, 'liked_by', _unique(self.liked_by))
        object.__setattr__(self, 'replies', tuple(self.replies))

    def __eq__(self, other):
        if not isinstance(other, Comment):
            return NotImplemented
        return self.comment_id == other.comment_id

    def __hash__(self):
        return hash(self.comment_id)

    @property
    def like_count(self) -> int:
        return len(self.liked_by)

    def is_liked_by(self, user_id: str) -> bool:
        return user_id in self.liked_by

    def to_dict(self) -> Dict[str, Any]:
        """Firestore에 저장되는 문서 형태(모바일 클라이언트와 동일한 필드명)로 변환합니다."""
        return {
            'commentId': self.comment_id,
            'text': self.text,
            'userId': self.author_id,
            'timestamp': DateTimeUtils.to_iso_string(self.created_at),
            'likes': list(self.liked_by),
            'replies': [reply.to_dict() for reply in self.replies],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Comment':
        """
        저장된 댓글 dict를 Comment로 변환합니다.
        likes/replies가 없는 과거 문서도 빈 값으로 읽습니다.

        :raises MalformedCommentError: commentId가 없거나 timestamp 형식이 잘못된 경우
        """
        if not isinstance(data, dict) or not data.get('commentId'):
            raise MalformedCommentError(f"commentId가 없는 댓글 문서입니다: {data!r}")
        comment_id = data['commentId']

        raw_likes = data.get('likes') or []
        liked_by = _unique(raw_likes)
        if len(liked_by) != len(raw_likes):
            logger.warning(f"중복된 좋아요 항목을 정리했습니다 (commentId: {data.get('commentId')})")

        timestamp = data.get('timestamp')
        try:
            created_at = DateTimeUtils.coerce(timestamp) if timestamp else DateTimeUtils.now()
        except ValueError as e:
            raise MalformedCommentError(f"잘못된 timestamp: {timestamp!r}", comment_id) from e

        return cls(
            comment_id=comment_id,
            text=data.get('text', ''),
            author_id=data.get('userId', ''),
            created_at=created_at,
            liked_by=liked_by,
            replies=tuple(cls.from_dict(reply) for reply in data.get('replies') or []),
        )


def comments_from_documents(raw_comments) -> Tuple[Comment, ...]:
    """listing 문서의 `comments` 배열 전체를 Comment 튜플로 변환합니다."""
    return tuple(Comment.from_dict(item) for item in raw_comments or [])


def comments_to_documents(comments: Iterable[Comment]):
    return [comment.to_dict() for comment in comments]


def count_comment_documents(raw_comments) -> int:
    """
    저장된 댓글 배열을 Comment로 변환하지 않고 답글까지 포함한 개수를 셉니다.
    피드처럼 개수만 필요한 곳에서 손상된 댓글 하나 때문에 전체 응답이 실패하지 않도록 사용합니다.
    """
    count = 0
    stack = list(raw_comments or [])
    while stack:
        item = stack.pop()
        count += 1
        if isinstance(item, dict) and isinstance(item.get('replies'), list):
            stack.extend(item['replies'])
    return count
