# swipex/conftest.py
"""
테스트 공용 fixture

Firestore 대신 FirestoreDocumentStore와 같은 인터페이스를 가진 메모리 저장소를 사용합니다.
"""

import copy
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token

from swipex import create_app
from swipex.core.exceptions import CommentTreeConflictError, DocumentNotFoundError, StoreTransportError


class InMemoryDocumentStore:
    """
    테스트용 메모리 저장소.
    - fail_next(n): 다음 n번의 호출을 일시 오류(StoreTransportError)로 실패시킵니다.
    - before_write: compare_and_set 직전에 호출되는 훅 (동시 쓰기 재현용)
    - fail_after_commit(n): 다음 n번의 compare_and_set을 기록한 뒤 일시 오류로 실패시킵니다
      (커밋은 반영됐지만 응답이 유실된 상황).
    """
    def __init__(self):
        self.collections = {}
        self.calls = []
        self.before_write = None
        self._failures = 0
        self._permanent = False
        self._lost_acks = 0

    def seed(self, collection, doc_id, data):
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def raw(self, collection, doc_id):
        return self.collections.get(collection, {}).get(doc_id)

    def fail_next(self, count=1, permanent=False):
        self._failures = count
        self._permanent = permanent

    def fail_after_commit(self, count=1):
        self._lost_acks = count

    def _record(self, operation):
        self.calls.append(operation)
        if self._failures > 0:
            self._failures -= 1
            raise StoreTransportError(f"{operation} 실패 (테스트)", transient=not self._permanent)

    def get_document(self, collection, doc_id):
        self._record('get_document')
        data = self.raw(collection, doc_id)
        return copy.deepcopy(data) if data is not None else None

    def set_field(self, collection, doc_id, field, value):
        self._record('set_field')
        data = self.raw(collection, doc_id)
        if data is None:
            raise DocumentNotFoundError(collection, doc_id)
        data[field] = copy.deepcopy(value)

    def compare_and_set(self, collection, doc_id, updates, version_field, expected_version):
        if self.before_write:
            hook, self.before_write = self.before_write, None
            hook(self)
        self._record('compare_and_set')
        data = self.raw(collection, doc_id)
        if data is None:
            raise DocumentNotFoundError(collection, doc_id)
        current_version = int(data.get(version_field) or 0)
        if current_version != expected_version:
            raise CommentTreeConflictError(doc_id, expected_version, current_version)
        data.update(copy.deepcopy(updates))
        data[version_field] = current_version + 1
        if self._lost_acks > 0:
            self._lost_acks -= 1
            raise StoreTransportError("커밋 응답 유실 (테스트)", transient=True)
        return current_version + 1

    def update_fields(self, collection, doc_id, updates):
        self._record('update_fields')
        data = self.raw(collection, doc_id)
        if data is None:
            raise DocumentNotFoundError(collection, doc_id)
        data.update(copy.deepcopy(updates))

    def create_document(self, collection, doc_id, data):
        self._record('create_document')
        if self.raw(collection, doc_id) is not None:
            raise StoreTransportError(f"이미 존재하는 문서입니다: {collection}/{doc_id}")
        self.seed(collection, doc_id, data)

    def delete_document(self, collection, doc_id):
        self._record('delete_document')
        self.collections.get(collection, {}).pop(doc_id, None)

    def update_array(self, collection, doc_id, field, value, add):
        self._record('update_array')
        data = self.raw(collection, doc_id)
        if data is None:
            raise DocumentNotFoundError(collection, doc_id)
        values = list(data.get(field) or [])
        if add and value not in values:
            values.append(value)
        elif not add:
            values = [v for v in values if v != value]
        data[field] = values

    def query_page(self, collection, order_by, limit, start_after=None, descending=True):
        self._record('query_page')
        docs = sorted(self.collections.get(collection, {}).items(),
                      key=lambda item: item[1].get(order_by), reverse=descending)
        if start_after:
            ids = [doc_id for doc_id, _ in docs]
            if start_after in ids:
                docs = docs[ids.index(start_after) + 1:]
        page = [(doc_id, copy.deepcopy(data)) for doc_id, data in docs[:limit]]
        return page, (page[-1][0] if page else None)

    def query_in(self, collection, field, values):
        self._record('query_in')
        values = list(values)
        return [(doc_id, copy.deepcopy(data))
                for doc_id, data in self.collections.get(collection, {}).items()
                if data.get(field) in values]


BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_listing(listing_id, posted_offset_minutes=0, **overrides):
    data = {
        'postId': listing_id,
        'title': f"Listing {listing_id}",
        'description': "Swap offer",
        'ownerId': 'owner',
        'ownerUsername': 'owner_name',
        'itemCategory': 'Electronics',
        'location': {'city': 'Accra'},
        'images': [],
        'videos': [],
        'likes': [],
        'savedBy': [],
        'comments': [],
        'datePosted': BASE_TIME + timedelta(minutes=posted_offset_minutes),
    }
    data.update(overrides)
    return data


def make_comment_doc(comment_id, text="hello", user_id="u1", likes=None, replies=None):
    return {
        'commentId': comment_id,
        'text': text,
        'userId': user_id,
        'timestamp': '2025-03-01T12:00:00.000Z',
        'likes': likes or [],
        'replies': replies or [],
    }


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def app(store):
    app = create_app('testing', document_store=store)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(user_id='u1'):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {'Authorization': f'Bearer {token}'}
    return _headers
