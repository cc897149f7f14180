# swipex/models/listing.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from swipex.models.comment import count_comment_documents
from swipex.utils.datetime_utils import DateTimeUtils

# listing 문서에서 댓글 트리와 버전 토큰이 저장되는 필드명
COMMENTS_FIELD = 'comments'
COMMENTS_VERSION_FIELD = 'commentsVersion'


@dataclass
class Listing:
    """
    Firestore 'listings' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    댓글 트리 자체는 CommentTreeSync가 다루며, 여기서는 개수와 버전만 가집니다.
    """
    listing_id: str
    post_id: str
    owner_id: Optional[str] = None
    owner_username: Optional[str] = None
    owner_profile_picture: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    item_category: Optional[str] = None
    condition: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    images: List[str] = field(default_factory=list)
    videos: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    exchange_for: List[str] = field(default_factory=list)
    is_open_to_any_offer: bool = False
    post_status: str = 'active'
    likes: List[str] = field(default_factory=list)
    saved_by: List[str] = field(default_factory=list)
    comment_count: int = 0
    comments_version: int = 0
    date_posted: Optional[datetime] = None

    @classmethod
    def from_document(cls, listing_id: str, data: Dict[str, Any]) -> 'Listing':
        date_posted = data.get('datePosted')
        location = data.get('location') or {}
        return cls(
            listing_id=listing_id,
            post_id=data.get('postId', listing_id),
            owner_id=data.get('ownerId'),
            owner_username=data.get('ownerUsername'),
            owner_profile_picture=data.get('ownerProfilePicture'),
            title=data.get('title'),
            description=data.get('description'),
            item_category=data.get('itemCategory'),
            condition=data.get('condition'),
            region=location.get('region'),
            city=location.get('city'),
            images=list(data.get('images') or []),
            videos=list(data.get('videos') or []),
            tags=list(data.get('tags') or []),
            exchange_for=list(data.get('exchangeFor') or []),
            is_open_to_any_offer=bool(data.get('isOpenToAnyOffer')),
            post_status=data.get('postStatus') or 'active',
            likes=list(dict.fromkeys(data.get('likes') or [])),
            saved_by=list(dict.fromkeys(data.get('savedBy') or [])),
            comment_count=count_comment_documents(data.get(COMMENTS_FIELD)),
            comments_version=int(data.get(COMMENTS_VERSION_FIELD) or 0),
            date_posted=DateTimeUtils.coerce(date_posted) if date_posted else None,
        )

    def matches(self, category: Optional[str] = None, query: Optional[str] = None) -> bool:
        """
        탐색 화면의 필터 조건과 일치하는지 확인합니다.
        - category: itemCategory와 대소문자 구분 없이 일치 ('all'이면 전체)
        - query: 제목, 설명, 태그 중 하나에 대소문자 구분 없이 포함
        """
        if category and category.lower() != 'all':
            if (self.item_category or '').lower() != category.lower():
                return False
        if query:
            q = query.lower()
            haystacks = [self.title or '', self.description or ''] + self.tags
            if not any(q in text.lower() for text in haystacks):
                return False
        return True
