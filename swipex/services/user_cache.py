# swipex/services/user_cache.py
import threading
import time
from typing import Callable, Optional

from cachetools import TTLCache

from swipex.models.user import UserProfile


class UserProfileCache:
    """
    사용자 공개 프로필 캐시.
    - 크기(maxsize)와 만료 시간(ttl)이 모두 제한됩니다.
    - 모듈 전역이 아니라 UserService 인스턴스가 소유하며, 필요한 서비스에 주입됩니다.
    - 존재하지 않는 사용자는 캐시하지 않습니다.
    """
    def __init__(self, loader: Callable[[str], Optional[UserProfile]], maxsize: int = 1024,
                 ttl: float = 300, timer: Optional[Callable[[], float]] = None):
        self._loader = loader
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer or time.monotonic)
        # Flask 개발 서버는 요청을 스레드로 처리하므로 캐시 접근을 직렬화합니다.
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            profile = self._cache.get(user_id)
        if profile is not None:
            return profile

        profile = self._loader(user_id)
        if profile is not None:
            with self._lock:
                self._cache[user_id] = profile
        return profile

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._cache.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._cache
