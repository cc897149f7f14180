# swipex/comments/projection.py
"""
댓글 트리를 화면(클라이언트)용 dict 구조로 변환합니다.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from swipex.comments.tree import walk
from swipex.models.comment import Comment
from swipex.models.user import UserProfile

AuthorLookup = Callable[[str], Optional[UserProfile]]


def _author_fields(author_id: str, author_lookup: Optional[AuthorLookup]) -> Dict[str, Any]:
    profile = author_lookup(author_id) if author_lookup else None
    return {
        'user_id': author_id,
        'username': profile.username if profile else "Anonymous",
        'profile_pic': profile.profile_pic if profile else None,
    }


def project_comment(comment: Comment, viewer_id: Optional[str] = None,
                    author_lookup: Optional[AuthorLookup] = None) -> Dict[str, Any]:
    """답글을 제외한 단일 노드의 표시용 필드"""
    return {
        'comment_id': comment.comment_id,
        'text': comment.text,
        'author': _author_fields(comment.author_id, author_lookup),
        'created_at': comment.created_at,
        'like_count': comment.like_count,
        'is_liked': bool(viewer_id) and comment.is_liked_by(viewer_id),
    }


def project_comments(comments: Sequence[Comment], viewer_id: Optional[str] = None,
                     author_lookup: Optional[AuthorLookup] = None,
                     max_depth: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    중첩 구조를 유지한 채 변환합니다.
    max_depth가 주어지면 그보다 깊은 답글은 잘라내고 reply_count로만 알려줍니다.
    """
    def _project(nodes: Sequence[Comment], depth: int) -> List[Dict[str, Any]]:
        items = []
        for node in nodes:
            item = project_comment(node, viewer_id, author_lookup)
            item['reply_count'] = len(node.replies)
            if max_depth is not None and depth >= max_depth:
                item['replies'] = []
            else:
                item['replies'] = _project(node.replies, depth + 1)
            items.append(item)
        return items

    return _project(comments, 0)


def flatten_comments(comments: Sequence[Comment], viewer_id: Optional[str] = None,
                     author_lookup: Optional[AuthorLookup] = None,
                     max_depth: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    깊이 우선 순서의 평면 목록으로 변환합니다. 각 항목에 depth와 parent_comment_id가 붙습니다.
    max_depth가 주어지면 표시 깊이를 그 값으로 제한합니다(앱은 한 단계 들여쓰기만 렌더링).
    """
    items = []
    for node, depth, parent_id in walk(comments):
        item = project_comment(node, viewer_id, author_lookup)
        item['depth'] = depth if max_depth is None else min(depth, max_depth)
        item['parent_comment_id'] = parent_id
        item['reply_count'] = len(node.replies)
        items.append(item)
    return items
