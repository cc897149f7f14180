# swipex/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간/날짜 처리를 위한 유틸리티 모듈

- 백엔드의 모든 시간은 UTC timezone-aware datetime으로 통일합니다.
- 모바일 클라이언트가 댓글에 기록한 ISO 문자열(`2024-01-15T10:30:00.000Z`)과
  Firestore timestamp 값을 모두 읽을 수 있어야 합니다.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00.123Z (JavaScript Date.toISOString)
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00 (UTC로 간주)
        """
        if not iso_string:
            raise ValueError("빈 문자열은 파싱할 수 없습니다")
        try:
            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'
            dt = dateutil_parser.isoparse(iso_string)
        except (ValueError, OverflowError) as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")
        return DateTimeUtils.to_utc(dt)

    @staticmethod
    def to_utc(dt: datetime) -> datetime:
        """naive datetime은 UTC로 간주하고, aware datetime은 UTC로 변환"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """
        datetime 객체를 클라이언트와 동일한 ISO 문자열로 변환 (밀리초, Z 접미사)
        """
        dt = DateTimeUtils.to_utc(dt)
        return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')

    @staticmethod
    def coerce(value: Any) -> datetime:
        """
        저장소에서 읽은 시간 값(ISO 문자열, datetime, Firestore timestamp)을
        UTC datetime으로 변환합니다.
        """
        if isinstance(value, datetime):
            return DateTimeUtils.to_utc(value)
        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)
        if hasattr(value, 'timestamp'):
            # Firestore DatetimeWithNanoseconds / protobuf Timestamp
            return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        raise ValueError(f"시간 값으로 변환할 수 없습니다: {value!r}")

