# swipex/comments/__init__.py
"""
listing에 내장된 댓글 트리 엔진

- tree:       깊이 우선 탐색/치환 (순수 함수)
- operations: 댓글 작성, 답글 작성, 좋아요 토글 (순수 함수)
- sync:       저장소에서 트리 전체를 읽고 쓰는 동기화 어댑터
- projection: 화면 표시용 변환
"""

from .operations import add_comment, add_reply, toggle_like
from .sync import CommentTreeSnapshot, CommentTreeSync
from .tree import CommentIndex, find_comment, modify_comment

__all__ = [
    'add_comment', 'add_reply', 'toggle_like',
    'CommentTreeSnapshot', 'CommentTreeSync',
    'CommentIndex', 'find_comment', 'modify_comment',
]
