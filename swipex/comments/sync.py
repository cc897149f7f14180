# swipex/comments/sync.py
"""
댓글 트리 동기화 어댑터

listing 문서의 `comments` 필드 전체를 읽고(load), 변경된 트리 전체를 다시 기록(replace)합니다.
부분 패치는 지원하지 않습니다.

동시성 정책: 낙관적 동시성 제어.
`commentsVersion` 필드를 버전 토큰으로 사용하며, replace는 읽은 시점의 버전과 저장된 버전이
같을 때만 기록합니다. apply는 버전 충돌이나 일시적 장애가 나면 최신 트리를 다시 읽어
같은 변경을 재적용합니다(지수 백오프, 전체 제한 시간 내에서만).
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence, Tuple

from google.api_core import exceptions as gexc
from google.api_core import retry as retries

from swipex.comments.tree import find_duplicate_ids
from swipex.core.exceptions import (
    CommentTreeConflictError,
    DocumentNotFoundError,
    ListingNotFoundError,
    StoreTransportError,
)
from swipex.models.comment import Comment, comments_from_documents, comments_to_documents
from swipex.models.listing import COMMENTS_FIELD, COMMENTS_VERSION_FIELD

logger = logging.getLogger(__name__)

LISTINGS_COLLECTION = 'listings'

# 트리를 받아 (새 트리, 결과)를 반환하는 변경 함수.
# 결과가 None이거나 입력 트리를 그대로 돌려주면 아무것도 기록하지 않습니다.
# 같은 변경이 여러 번 적용될 수 있으므로 재적용해도 결과가 같아야 합니다(operations.prepare_add 참고).
Mutation = Callable[[Tuple[Comment, ...]], Tuple[Sequence[Comment], Any]]


@dataclass(frozen=True)
class CommentTreeSnapshot:
    listing_id: str
    comments: Tuple[Comment, ...]
    version: int


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, CommentTreeConflictError):
        return True
    return isinstance(exc, StoreTransportError) and exc.transient


def _log_retry(exc: Exception) -> None:
    logger.warning(f"댓글 트리 쓰기 재시도: {exc}")


class CommentTreeSync:
    """
    listing 단위로 댓글 트리를 읽고 쓰는 어댑터.
    """
    def __init__(self, document_store, deadline: float = 10.0,
                 initial_delay: float = 0.1, max_delay: float = 2.0):
        self.store = document_store
        self._retry = retries.Retry(
            predicate=_is_retryable,
            initial=initial_delay,
            maximum=max_delay,
            multiplier=2.0,
            timeout=deadline,
            on_error=_log_retry,
        )

    def load(self, listing_id: str) -> CommentTreeSnapshot:
        """현재 저장된 댓글 트리와 버전을 읽습니다."""
        data = self.store.get_document(LISTINGS_COLLECTION, listing_id)
        if data is None:
            raise ListingNotFoundError(listing_id)
        comments = comments_from_documents(data.get(COMMENTS_FIELD))
        version = int(data.get(COMMENTS_VERSION_FIELD) or 0)
        return CommentTreeSnapshot(listing_id, comments, version)

    def replace(self, listing_id: str, comments: Sequence[Comment], expected_version: int) -> int:
        """
        댓글 트리 전체를 교체하고 새 버전을 반환합니다.

        :raises CommentTreeConflictError: 읽은 이후 다른 쓰기가 먼저 반영된 경우
        :raises ListingNotFoundError: 그 사이 listing이 삭제된 경우
        """
        duplicates = find_duplicate_ids(comments)
        if duplicates:
            logger.warning(f"중복 commentId가 포함된 트리를 기록합니다 (listing: {listing_id}, ids: {sorted(duplicates)})")
        try:
            return self.store.compare_and_set(
                LISTINGS_COLLECTION,
                listing_id,
                {COMMENTS_FIELD: comments_to_documents(comments)},
                COMMENTS_VERSION_FIELD,
                expected_version,
            )
        except DocumentNotFoundError as e:
            raise ListingNotFoundError(listing_id) from e

    def apply(self, listing_id: str, mutation: Mutation) -> Tuple[CommentTreeSnapshot, Any]:
        """
        load -> mutation -> replace를 한 번의 변경 단위로 수행합니다.
        mutation은 항상 저장소에서 방금 읽은 트리에 적용되므로, 화면에 남아 있던
        오래된 상태 때문에 다른 사용자의 변경을 덮어쓰지 않습니다.

        :return: (기록 후 스냅샷, mutation 결과)
        """
        def _attempt():
            snapshot = self.load(listing_id)
            new_comments, result = mutation(snapshot.comments)
            if result is None or new_comments is snapshot.comments:
                # 대상이 없거나, 이전 시도에서 이미 반영된 경우
                return snapshot, result
            new_comments = tuple(new_comments)
            version = self.replace(listing_id, new_comments, snapshot.version)
            logger.info(f"댓글 트리 갱신 완료 (listing: {listing_id}, version: {version})")
            return CommentTreeSnapshot(listing_id, new_comments, version), result

        try:
            return self._retry(_attempt)()
        except gexc.RetryError as e:
            cause = e.cause
            logger.error(f"댓글 트리 쓰기 재시도 한도 초과 (listing: {listing_id}): {cause}")
            if isinstance(cause, (CommentTreeConflictError, StoreTransportError)):
                raise cause from e
            raise StoreTransportError(str(e), transient=True) from e
