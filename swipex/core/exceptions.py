# swipex/core/exceptions.py
"""
도메인 전반에서 사용하는 예외 정의.

- 리소스 부재는 ValueError 계열로 두어, 라우트에서 404로 변환하는 기존 관례를 따릅니다.
- 저장소 통신 실패는 StoreTransportError로 감싸 transient 여부를 함께 전달합니다.
"""


class DocumentNotFoundError(ValueError):
    """요청한 Firestore 문서가 존재하지 않을 때 발생합니다."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"문서를 찾을 수 없습니다: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class ListingNotFoundError(ValueError):
    """대상 게시물(listing)이 존재하지 않을 때 발생합니다."""

    def __init__(self, listing_id: str):
        super().__init__(f"게시물을 찾을 수 없습니다: {listing_id}")
        self.listing_id = listing_id


class CommentNotFoundError(ValueError):
    """댓글 트리 안에서 대상 댓글을 찾지 못했을 때 발생합니다."""

    def __init__(self, comment_id: str):
        super().__init__(f"댓글을 찾을 수 없습니다: {comment_id}")
        self.comment_id = comment_id


class StoreTransportError(Exception):
    """백엔드 저장소 호출이 실패했을 때 발생합니다."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class CommentTreeConflictError(Exception):
    """댓글 트리의 버전이 읽은 시점 이후 다른 쓰기에 의해 변경되었을 때 발생합니다."""

    def __init__(self, listing_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"댓글 트리 버전 충돌 (listing: {listing_id}, expected: {expected_version}, actual: {actual_version})"
        )
        self.listing_id = listing_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class MalformedCommentError(ValueError):
    """저장된 댓글 문서가 필수 필드를 갖추지 못했거나 값 형식이 잘못되었을 때 발생합니다."""

    def __init__(self, message: str, comment_id: str = None):
        super().__init__(message)
        self.comment_id = comment_id
