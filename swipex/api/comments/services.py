# swipex/api/comments/services.py

import logging
from typing import Optional, Dict, Any

from swipex.comments.operations import prepare_add, prepare_like_toggle, validate_text
from swipex.comments.projection import flatten_comments, project_comment, project_comments
from swipex.comments.sync import CommentTreeSync
from swipex.comments.tree import count_comments
from swipex.core.exceptions import (
    CommentNotFoundError,
    CommentTreeConflictError,
    MalformedCommentError,
    StoreTransportError,
)


class CommentService:
    """
    listing에 내장된 댓글 트리 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 댓글/답글 작성, 댓글 좋아요 토글, 트리 조회를 포함합니다.
    - 모든 쓰기는 CommentTreeSync.apply를 통해 최신 트리에 적용된 뒤 트리 전체로 기록됩니다.
    """
    def __init__(self, comment_sync: CommentTreeSync, user_service=None, max_length: int = 1000):
        self.sync = comment_sync
        self.user_service = user_service
        self.max_length = max_length

    def _author_lookup(self):
        return self.user_service.get_profile if self.user_service else None

    def _load(self, listing_id: str):
        try:
            return self.sync.load(listing_id)
        except MalformedCommentError as e:
            logging.error(f"손상된 댓글 트리 (listing_id: {listing_id}): {e}")
            raise

    def get_comments(self, listing_id: str, viewer_id: Optional[str],
                     flat: bool = False, max_depth: Optional[int] = None) -> Dict[str, Any]:
        """listing의 댓글 트리를 화면 표시용으로 조회합니다."""
        snapshot = self._load(listing_id)
        project = flatten_comments if flat else project_comments
        return {
            "listing_id": listing_id,
            "comments": project(snapshot.comments, viewer_id, self._author_lookup(), max_depth),
            "comment_count": count_comments(snapshot.comments),
            "version": snapshot.version,
        }

    def create_comment(self, listing_id: str, author_id: str, text: str,
                       parent_comment_id: Optional[str] = None) -> Dict[str, Any]:
        """
        새 댓글을 작성합니다. parent_comment_id가 있으면 해당 댓글의 답글로 추가합니다.
        - 본문 검증은 저장소 호출 전에 수행됩니다.
        - 답글 대상이 트리에 없으면 아무것도 기록하지 않고 CommentNotFoundError를 던집니다.
        """
        cleaned = validate_text(text, self.max_length)
        # 재시도되더라도 같은 노드가 한 번만 들어가도록 변경 함수를 먼저 만들어 둡니다.
        mutation = prepare_add(cleaned, author_id, parent_comment_id, max_length=self.max_length)

        try:
            snapshot, new_comment = self.sync.apply(listing_id, mutation)
        except MalformedCommentError as e:
            logging.error(f"손상된 댓글 트리 (listing_id: {listing_id}): {e}")
            raise
        except (StoreTransportError, CommentTreeConflictError) as e:
            logging.error(f"댓글 작성 실패 (listing_id: {listing_id}, parent: {parent_comment_id}): {e}", exc_info=True)
            raise

        if new_comment is None:
            raise CommentNotFoundError(parent_comment_id)

        logging.info(f"댓글 작성 완료 (listing_id: {listing_id}, comment_id: {new_comment.comment_id})")
        lookup = self._author_lookup()
        return {
            "comment": project_comment(new_comment, author_id, lookup),
            "parent_comment_id": parent_comment_id,
            "comments": project_comments(snapshot.comments, author_id, lookup),
            "version": snapshot.version,
        }

    def toggle_comment_like(self, listing_id: str, comment_id: str, user_id: str) -> Dict[str, Any]:
        """
        댓글 좋아요를 누르거나 취소합니다.
        좋아요/취소 여부는 화면 상태가 아니라 저장소에서 처음 읽은 트리 기준으로 정하며,
        재시도 중에도 그 목표 상태로만 기록됩니다.
        """
        mutation = prepare_like_toggle(comment_id, user_id)

        try:
            snapshot, updated = self.sync.apply(listing_id, mutation)
        except MalformedCommentError as e:
            logging.error(f"손상된 댓글 트리 (listing_id: {listing_id}): {e}")
            raise
        except (StoreTransportError, CommentTreeConflictError) as e:
            logging.error(f"댓글 좋아요 토글 실패 (listing_id: {listing_id}, comment_id: {comment_id}): {e}", exc_info=True)
            raise

        if updated is None:
            raise CommentNotFoundError(comment_id)

        return {
            "comment_id": comment_id,
            "is_liked": updated.is_liked_by(user_id),
            "like_count": updated.like_count,
            "version": snapshot.version,
        }
