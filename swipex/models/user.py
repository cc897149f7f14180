# swipex/models/user.py
from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass
class UserProfile:
    """
    Firestore 'users' 컬렉션의 문서 중 댓글/피드/프로필 화면에 필요한 공개 프로필 부분.
    저장 목록과 게시물 목록은 자주 바뀌므로 여기에 담지 않고 매번 새로 읽습니다.
    """
    user_id: str
    username: str = "Anonymous"
    profile_pic: Optional[str] = None
    full_name: Optional[str] = None
    description: Optional[str] = None
    pronouns: Optional[str] = None

    @classmethod
    def from_document(cls, user_id: str, data: Dict[str, Any]) -> 'UserProfile':
        return cls(
            user_id=user_id,
            username=data.get('username') or "Anonymous",
            profile_pic=data.get('profilePic'),
            full_name=data.get('fullName'),
            description=data.get('description'),
            pronouns=data.get('pronouns'),
        )
