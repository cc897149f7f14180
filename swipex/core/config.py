# swipex/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    return int(value) if value else default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    return float(value) if value else default


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # 외부에서 발급된 JWT 토큰의 서명을 검증하는 데 사용되는 키입니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')

    # 댓글 본문 최대 길이
    COMMENT_MAX_LENGTH = _env_int('COMMENT_MAX_LENGTH', 1000)
    # 댓글 트리 쓰기(충돌 재시도 포함)에 허용되는 전체 시간(초)
    COMMENT_WRITE_DEADLINE = _env_float('COMMENT_WRITE_DEADLINE', 10.0)

    # 세로 스크롤 피드의 페이지 크기
    FEED_PAGE_SIZE = _env_int('FEED_PAGE_SIZE', 5)
    FEED_MAX_PAGE_SIZE = _env_int('FEED_MAX_PAGE_SIZE', 50)
    # 탐색 화면 검색 시 필터링할 최신 게시물 수
    SEARCH_SCAN_LIMIT = _env_int('SEARCH_SCAN_LIMIT', 200)

    # 사용자 프로필 캐시: 최대 항목 수와 TTL(초)
    USER_CACHE_MAXSIZE = _env_int('USER_CACHE_MAXSIZE', 1024)
    USER_CACHE_TTL_SECONDS = _env_int('USER_CACHE_TTL_SECONDS', 300)


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    # 개발용 Firebase 프로젝트의 서비스 계정 키 파일 경로
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'swipex-test-secret-key-at-least-32-bytes')
    # 테스트에서는 재시도 대기 시간을 짧게 유지합니다.
    COMMENT_WRITE_DEADLINE = 2.0


class ProductionConfig(Config):
    """운영 환경을 위한 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
