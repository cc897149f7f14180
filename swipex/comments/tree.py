# swipex/comments/tree.py
"""
댓글 트리 탐색/치환 모듈

listing 하나에 내장된 댓글 트리는 깊이 제한이 없는 재귀 구조입니다.
모든 함수는 순수 함수이며 입력 시퀀스를 변경하지 않습니다.
변경되지 않은 가지는 새 트리에서도 같은 객체를 그대로 공유합니다.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from swipex.models.comment import Comment

logger = logging.getLogger(__name__)

CommentModifier = Callable[[Comment], Comment]


def modify_comment(comments: Sequence[Comment], comment_id: str, modifier: CommentModifier) -> Tuple[Comment, ...]:
    """
    comment_id와 일치하는 노드를 modifier(node)로 치환한 새 시퀀스를 반환합니다.

    - 깊이 우선(pre-order)으로 탐색하며, 형제 노드의 순서와 위치는 그대로 유지됩니다.
    - 대상이 트리에 없으면 입력과 동일한 구조를 반환하고 예외를 던지지 않습니다.
      (다른 클라이언트가 동시에 트리를 바꿨을 수 있으므로 예외 상황으로 보지 않습니다.)
    - 같은 ID가 여러 번 나타나면 첫 번째 노드에만 적용하고, 나머지는 경고 로그만 남깁니다.
    """
    new_comments, _ = modify_comment_with_result(comments, comment_id, modifier)
    return new_comments


def modify_comment_with_result(comments: Sequence[Comment], comment_id: str,
                               modifier: CommentModifier) -> Tuple[Tuple[Comment, ...], bool]:
    """modify_comment와 같지만 대상 노드를 찾아 적용했는지 여부를 함께 반환합니다."""
    if comment_id in find_duplicate_ids(comments):
        logger.warning(f"중복된 commentId 발견, 첫 번째 노드에만 적용합니다 (commentId: {comment_id})")
    state = {'applied': False}
    new_comments = _modify(tuple(comments), comment_id, modifier, state)
    return new_comments, state['applied']


def _modify(comments: Tuple[Comment, ...], comment_id: str, modifier: CommentModifier, state: dict) -> Tuple[Comment, ...]:
    changed = False
    result: List[Comment] = []
    for node in comments:
        new_node = node
        if node.comment_id == comment_id:
            if not state['applied']:
                new_node = modifier(node)
                state['applied'] = True
        elif node.replies:
            new_replies = _modify(node.replies, comment_id, modifier, state)
            if new_replies is not node.replies:
                new_node = replace(node, replies=new_replies)
        if new_node is not node:
            changed = True
        result.append(new_node)
    return tuple(result) if changed else comments


def walk(comments: Sequence[Comment]) -> Iterator[Tuple[Comment, int, Optional[str]]]:
    """
    트리를 깊이 우선(pre-order)으로 순회하며 (노드, 깊이, 부모 commentId)를 생성합니다.
    최상위 댓글의 깊이는 0, 부모는 None입니다.
    재귀 대신 명시적 스택을 사용하므로 트리 깊이가 인터프리터 재귀 한도에 묶이지 않습니다.
    """
    stack = [(node, 0, None) for node in reversed(comments)]
    while stack:
        node, depth, parent_id = stack.pop()
        yield node, depth, parent_id
        for reply in reversed(node.replies):
            stack.append((reply, depth + 1, node.comment_id))


def find_comment(comments: Sequence[Comment], comment_id: str) -> Optional[Comment]:
    """깊이 우선 탐색에서 처음 만나는 일치 노드를 반환합니다."""
    for node, _, _ in walk(comments):
        if node.comment_id == comment_id:
            return node
    return None


def collect_ids(comments: Sequence[Comment]) -> Set[str]:
    return {node.comment_id for node, _, _ in walk(comments)}


def count_comments(comments: Sequence[Comment]) -> int:
    """답글을 포함한 전체 댓글 수"""
    return sum(1 for _ in walk(comments))


def find_duplicate_ids(comments: Sequence[Comment]) -> Set[str]:
    """트리 전체에서 두 번 이상 등장하는 commentId 집합을 반환합니다."""
    seen: Set[str] = set()
    duplicates: Set[str] = set()
    for node, _, _ in walk(comments):
        if node.comment_id in seen:
            duplicates.add(node.comment_id)
        seen.add(node.comment_id)
    return duplicates


@dataclass(frozen=True)
class IndexEntry:
    node: Comment
    depth: int
    parent_id: Optional[str]


class CommentIndex:
    """
    트리를 한 번 순회해 commentId -> (노드, 깊이, 부모) 평면 인덱스를 만듭니다.
    같은 트리에 대해 여러 번 조회해야 할 때 매번 재귀 탐색하지 않기 위해 사용합니다.
    중복 ID는 첫 번째 노드만 인덱싱하고 duplicates에 기록합니다.
    """

    def __init__(self, comments: Sequence[Comment]):
        self._entries: Dict[str, IndexEntry] = {}
        self.duplicates: Set[str] = set()
        for node, depth, parent_id in walk(comments):
            if node.comment_id in self._entries:
                self.duplicates.add(node.comment_id)
                continue
            self._entries[node.comment_id] = IndexEntry(node, depth, parent_id)
        if self.duplicates:
            logger.warning(f"댓글 트리에 중복된 commentId가 있습니다: {sorted(self.duplicates)}")

    def __contains__(self, comment_id: str) -> bool:
        return comment_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def ids(self) -> Set[str]:
        return set(self._entries)

    def get(self, comment_id: str) -> Optional[Comment]:
        entry = self._entries.get(comment_id)
        return entry.node if entry else None

    def depth_of(self, comment_id: str) -> Optional[int]:
        entry = self._entries.get(comment_id)
        return entry.depth if entry else None

    def parent_of(self, comment_id: str) -> Optional[str]:
        entry = self._entries.get(comment_id)
        return entry.parent_id if entry else None

    def path_to(self, comment_id: str) -> List[str]:
        """최상위 댓글부터 대상 댓글까지의 commentId 경로. 없으면 빈 리스트."""
        path: List[str] = []
        current = comment_id if comment_id in self._entries else None
        while current is not None:
            path.append(current)
            current = self._entries[current].parent_id
        return list(reversed(path))
