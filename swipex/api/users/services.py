# swipex/api/users/services.py
import logging
from typing import Optional, List, Dict, Any

from swipex.core.exceptions import DocumentNotFoundError
from swipex.models.user import UserProfile
from swipex.services.user_cache import UserProfileCache

USERS = 'users'

# 프로필 수정 요청의 필드명 -> 사용자 문서의 필드명
PROFILE_FIELDS = {
    'full_name': 'fullName',
    'username': 'username',
    'description': 'description',
    'pronouns': 'pronouns',
}


class UserService:
    """
    사용자 프로필 조회/수정을 담당하는 서비스 클래스.
    - 댓글 작성자 표시처럼 반복되는 프로필 조회는 UserProfileCache를 거칩니다.
    - 프로필을 수정하면 해당 사용자의 캐시 항목을 즉시 무효화합니다.
    """
    def __init__(self, document_store, cache_maxsize: int = 1024, cache_ttl: float = 300):
        self.store = document_store
        self.cache = UserProfileCache(self._load_profile, maxsize=cache_maxsize, ttl=cache_ttl)

    def _load_profile(self, user_id: str) -> Optional[UserProfile]:
        data = self.store.get_document(USERS, user_id)
        if data is None:
            logging.info(f"프로필을 찾을 수 없는 사용자 (user_id: {user_id})")
            return None
        return UserProfile.from_document(user_id, data)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """캐시를 통해 공개 프로필을 조회합니다."""
        if not user_id:
            return None
        return self.cache.get(user_id)

    def _id_list(self, user_id: str, field: str) -> List[str]:
        data = self.store.get_document(USERS, user_id)
        if data is None:
            raise ValueError("사용자를 찾을 수 없습니다.")
        return list(data.get(field) or [])

    def get_saved_listing_ids(self, user_id: str) -> List[str]:
        """저장 목록은 자주 바뀌므로 캐시를 거치지 않고 항상 새로 읽습니다."""
        return self._id_list(user_id, 'savedListings')

    def get_listing_ids(self, user_id: str) -> List[str]:
        return self._id_list(user_id, 'listings')

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> UserProfile:
        """
        프로필 정보(fullName, username, description, pronouns)를 수정합니다.

        :param changes: 요청 스키마를 통과한 필드들 (snake_case)
        :raises ValueError: 사용자 문서가 없을 때
        """
        updates = {PROFILE_FIELDS[key]: value for key, value in changes.items() if key in PROFILE_FIELDS}
        try:
            self.store.update_fields(USERS, user_id, updates)
        except DocumentNotFoundError as e:
            raise ValueError("사용자를 찾을 수 없습니다.") from e
        finally:
            # 기록 결과와 관계없이 캐시된 프로필은 더 이상 믿을 수 없습니다.
            self.cache.invalidate(user_id)
        logging.info(f"프로필 수정 완료 (user_id: {user_id}, fields: {sorted(updates)})")
        return self.get_profile(user_id)

    def update_profile_pic(self, user_id: str, url: str) -> UserProfile:
        """프로필 사진 URL만 교체합니다. 이미지 업로드는 클라이언트가 처리합니다."""
        try:
            self.store.set_field(USERS, user_id, 'profilePic', url)
        except DocumentNotFoundError as e:
            raise ValueError("사용자를 찾을 수 없습니다.") from e
        finally:
            self.cache.invalidate(user_id)
        return self.get_profile(user_id)
