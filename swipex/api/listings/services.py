# swipex/api/listings/services.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple, List

from swipex.core.exceptions import DocumentNotFoundError, ListingNotFoundError, StoreTransportError
from swipex.models.listing import Listing
from swipex.utils.datetime_utils import DateTimeUtils

LISTINGS = 'listings'
USERS = 'users'


class ListingService:
    """
    게시물(listing) 피드, 좋아요, 저장(찜) 관련 비즈니스 로직을 담당하는 서비스 클래스.
    """
    def __init__(self, document_store, user_service=None, page_size: int = 5, max_page_size: int = 50,
                 search_scan_limit: int = 200):
        self.store = document_store
        self.user_service = user_service
        self.page_size = page_size
        self.max_page_size = max_page_size
        self.search_scan_limit = search_scan_limit

    def _to_response(self, listing: Listing, viewer_id: Optional[str]) -> Dict[str, Any]:
        return {
            "listing_id": listing.listing_id,
            "post_id": listing.post_id,
            "title": listing.title,
            "description": listing.description,
            "owner": {
                "user_id": listing.owner_id,
                "username": listing.owner_username,
                "profile_picture": listing.owner_profile_picture,
            },
            "item_category": listing.item_category,
            "condition": listing.condition,
            "region": listing.region,
            "city": listing.city,
            "images": listing.images,
            "videos": listing.videos,
            "tags": listing.tags,
            "exchange_for": listing.exchange_for,
            "is_open_to_any_offer": listing.is_open_to_any_offer,
            "post_status": listing.post_status,
            "like_count": len(listing.likes),
            "saved_count": len(listing.saved_by),
            "comment_count": listing.comment_count,
            "is_liked": bool(viewer_id) and viewer_id in listing.likes,
            "is_saved": bool(viewer_id) and viewer_id in listing.saved_by,
            "date_posted": listing.date_posted,
        }

    def _load(self, listing_id: str) -> Listing:
        data = self.store.get_document(LISTINGS, listing_id)
        if data is None:
            raise ListingNotFoundError(listing_id)
        return Listing.from_document(listing_id, data)

    def _parse_many(self, docs) -> List[Listing]:
        """문서 목록을 Listing으로 변환합니다. 형식이 잘못된 문서는 로그를 남기고 건너뜁니다."""
        listings = []
        for doc_id, data in docs:
            try:
                listings.append(Listing.from_document(doc_id, data))
            except ValueError as e:
                logging.error(f"손상된 게시물 문서를 건너뜁니다 (listing_id: {doc_id}): {e}")
        return listings

    def get_feed(self, viewer_id: Optional[str], limit: Optional[int],
                 cursor: Optional[str]) -> Tuple[List[Dict[str, Any]], Optional[str], bool]:
        """
        세로 스크롤 피드 한 페이지를 최신순(datePosted 내림차순)으로 조회합니다.
        다음 페이지 존재 여부 확인을 위해 limit + 1개를 조회합니다.

        :return: (게시물 목록, 다음 커서, has_more)
        """
        limit = min(limit or self.page_size, self.max_page_size)
        try:
            docs, _ = self.store.query_page(LISTINGS, 'datePosted', limit + 1, start_after=cursor)
        except StoreTransportError as e:
            logging.error(f"피드 조회 실패 (cursor: {cursor}): {e}", exc_info=True)
            raise

        has_more = len(docs) > limit
        docs = docs[:limit]
        listings = [self._to_response(listing, viewer_id) for listing in self._parse_many(docs)]
        # 커서는 건너뛴 문서와 관계없이 이번 페이지의 마지막 문서 ID입니다.
        next_cursor = docs[-1][0] if docs and has_more else None
        return listings, next_cursor, has_more

    def search(self, viewer_id: Optional[str], category: Optional[str], query: Optional[str],
               limit: Optional[int]) -> List[Dict[str, Any]]:
        """
        탐색 화면의 카테고리/검색어 필터.
        최신 게시물 search_scan_limit개를 읽은 뒤 제목, 설명, 태그를 대소문자 구분 없이 비교합니다.
        """
        limit = min(limit or self.max_page_size, self.max_page_size)
        docs, _ = self.store.query_page(LISTINGS, 'datePosted', self.search_scan_limit)
        matched = [listing for listing in self._parse_many(docs) if listing.matches(category, query)]
        return [self._to_response(listing, viewer_id) for listing in matched[:limit]]

    def get_listing(self, listing_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        return self._to_response(self._load(listing_id), viewer_id)

    def create_listing(self, owner_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        새 게시물을 등록하고 작성자의 listings 목록에 postId를 추가합니다.
        작성자 목록 갱신이 실패하면 만든 게시물 문서를 삭제합니다.
        """
        owner = self.store.get_document(USERS, owner_id)
        if owner is None:
            raise ValueError("사용자를 찾을 수 없습니다.")

        post_id = uuid.uuid4().hex
        now = DateTimeUtils.now()
        data = {
            'postId': post_id,
            'ownerId': owner_id,
            'ownerUsername': owner.get('username'),
            'ownerProfilePicture': owner.get('profilePic') or "",
            'title': fields['title'],
            'description': fields['description'],
            'itemCategory': fields['item_category'],
            'condition': fields['condition'],
            'images': fields['images'],
            'videos': fields.get('videos') or [],
            'location': {
                'region': fields.get('region'),
                'city': fields.get('city'),
                'coordinates': fields.get('coordinates'),
            },
            'exchangeFor': fields.get('exchange_for') or [],
            'isOpenToAnyOffer': fields.get('is_open_to_any_offer', False),
            'tags': fields.get('tags') or [],
            'postStatus': 'active',
            'datePosted': now,
            'lastUpdated': now,
            'likes': [],
            'savedBy': [],
            'views': 0,
            'comments': [],
            'commentsVersion': 0,
        }
        # 문서 ID를 postId와 같게 두어 ID만으로 바로 조회할 수 있게 합니다.
        self.store.create_document(LISTINGS, post_id, data)

        try:
            self.store.update_array(USERS, owner_id, 'listings', post_id, add=True)
        except (DocumentNotFoundError, StoreTransportError) as e:
            logging.error(f"작성자 게시물 목록 갱신 실패, 게시물을 삭제합니다 (post_id: {post_id}): {e}", exc_info=True)
            self.store.delete_document(LISTINGS, post_id)
            if isinstance(e, DocumentNotFoundError):
                raise ValueError("사용자를 찾을 수 없습니다.") from e
            raise

        logging.info(f"게시물 등록 완료 (post_id: {post_id}, owner_id: {owner_id})")
        return self._to_response(Listing.from_document(post_id, data), owner_id)

    def toggle_listing_like(self, listing_id: str, user_id: str) -> Dict[str, Any]:
        """
        게시물 좋아요를 누르거나 취소합니다.
        현재 상태는 저장소에서 읽은 값 기준이며, 기록은 ArrayUnion/ArrayRemove로 원자적으로 수행합니다.
        """
        listing = self._load(listing_id)
        is_liked = user_id not in listing.likes
        try:
            self.store.update_array(LISTINGS, listing_id, 'likes', user_id, add=is_liked)
        except DocumentNotFoundError as e:
            raise ListingNotFoundError(listing_id) from e

        like_count = len(listing.likes) + (1 if is_liked else -1)
        logging.info(f"게시물 좋아요 {'추가' if is_liked else '취소'} (listing_id: {listing_id}, user_id: {user_id})")
        return {"listing_id": listing_id, "is_liked": is_liked, "like_count": like_count}

    def toggle_save(self, listing_id: str, user_id: str) -> Dict[str, Any]:
        """
        게시물 저장(찜)을 토글합니다.
        사용자 문서의 savedListings와 게시물 문서의 savedBy를 함께 갱신하며,
        두 번째 기록이 실패하면 첫 번째 기록을 되돌립니다.
        """
        listing = self._load(listing_id)
        is_saved = user_id not in listing.saved_by

        try:
            self.store.update_array(USERS, user_id, 'savedListings', listing.post_id, add=is_saved)
        except DocumentNotFoundError as e:
            raise ValueError("사용자를 찾을 수 없습니다.") from e

        try:
            self.store.update_array(LISTINGS, listing_id, 'savedBy', user_id, add=is_saved)
        except (DocumentNotFoundError, StoreTransportError) as e:
            logging.error(f"게시물 저장 상태 갱신 실패, 사용자 저장 목록을 되돌립니다 (listing_id: {listing_id}): {e}", exc_info=True)
            self.store.update_array(USERS, user_id, 'savedListings', listing.post_id, add=not is_saved)
            if isinstance(e, DocumentNotFoundError):
                raise ListingNotFoundError(listing_id) from e
            raise

        saved_count = len(listing.saved_by) + (1 if is_saved else -1)
        return {"listing_id": listing_id, "is_saved": is_saved, "saved_count": saved_count}

    def _listings_by_post_ids(self, post_ids: List[str], viewer_id: Optional[str]) -> List[Listing]:
        if not post_ids:
            return []
        docs = self.store.query_in(LISTINGS, 'postId', post_ids)
        listings = self._parse_many(docs)
        # 사용자 문서의 배열에 들어간 순서를 유지합니다.
        order = {post_id: i for i, post_id in enumerate(post_ids)}
        listings.sort(key=lambda item: order.get(item.post_id, len(order)))
        return listings

    def get_saved_listings(self, user_id: str) -> List[Dict[str, Any]]:
        """사용자가 저장한 게시물 목록을 조회합니다."""
        saved_ids = self.user_service.get_saved_listing_ids(user_id)
        return [self._to_response(listing, user_id) for listing in self._listings_by_post_ids(saved_ids, user_id)]

    def get_user_listings(self, owner_id: str, viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        """프로필의 '내 게시물' 탭: 사용자가 등록한 게시물을 최신순으로 조회합니다."""
        post_ids = self.user_service.get_listing_ids(owner_id)
        listings = self._listings_by_post_ids(post_ids, viewer_id)
        listings.sort(key=lambda item: item.date_posted or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return [self._to_response(listing, viewer_id) for listing in listings]
