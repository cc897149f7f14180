# swipex/services/document_store.py
"""
Firestore 문서 저장소 어댑터

서비스 계층은 이 어댑터를 통해서만 Firestore와 통신합니다.
google.api_core 예외는 StoreTransportError로 변환되어 transient 여부와 함께 전달됩니다.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as gexc

from swipex.core.exceptions import (
    CommentTreeConflictError,
    DocumentNotFoundError,
    StoreTransportError,
)

logger = logging.getLogger(__name__)

# 일시적인 장애로 보고 재시도할 수 있는 예외들
TRANSIENT_ERRORS = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.Aborted,
    gexc.ResourceExhausted,
    gexc.InternalServerError,
)

# Firestore 'in' 쿼리에 한 번에 넣을 수 있는 값의 최대 개수
IN_QUERY_CHUNK = 30


@contextmanager
def _translate_errors(operation: str, collection: str, doc_id: Optional[str] = None):
    try:
        yield
    except gexc.NotFound as e:
        raise DocumentNotFoundError(collection, doc_id or '') from e
    except TRANSIENT_ERRORS as e:
        logger.warning(f"Firestore 일시 오류 ({operation} {collection}/{doc_id}): {e}")
        raise StoreTransportError(f"{operation} 실패: {e}", transient=True) from e
    except gexc.GoogleAPICallError as e:
        logger.error(f"Firestore 호출 실패 ({operation} {collection}/{doc_id}): {e}", exc_info=True)
        raise StoreTransportError(f"{operation} 실패: {e}", transient=False) from e


class FirestoreDocumentStore:
    """
    컬렉션/문서 ID 기반의 키-문서 저장소.
    """
    def __init__(self, db=None):
        self.db = db or firestore.client()

    def _ref(self, collection: str, doc_id: str):
        return self.db.collection(collection).document(doc_id)

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """문서를 dict로 반환합니다. 문서가 없으면 None."""
        with _translate_errors('get_document', collection, doc_id):
            snapshot = self._ref(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set_field(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        """단일 필드 값을 통째로 교체합니다. 문서가 없으면 DocumentNotFoundError."""
        with _translate_errors('set_field', collection, doc_id):
            self._ref(collection, doc_id).update({field: value})

    def update_fields(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> None:
        """여러 필드를 한 번의 update로 교체합니다. 문서가 없으면 DocumentNotFoundError."""
        with _translate_errors('update_fields', collection, doc_id):
            self._ref(collection, doc_id).update(updates)

    def create_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """새 문서를 만듭니다. 같은 ID의 문서가 이미 있으면 StoreTransportError."""
        with _translate_errors('create_document', collection, doc_id):
            self._ref(collection, doc_id).create(data)

    def delete_document(self, collection: str, doc_id: str) -> None:
        with _translate_errors('delete_document', collection, doc_id):
            self._ref(collection, doc_id).delete()

    def compare_and_set(self, collection: str, doc_id: str, updates: Dict[str, Any],
                        version_field: str, expected_version: int) -> int:
        """
        트랜잭션 안에서 version_field 값이 expected_version과 같을 때만 updates를 기록하고
        버전을 1 증가시킵니다. 새 버전을 반환합니다.

        :raises DocumentNotFoundError: 문서가 없을 때
        :raises CommentTreeConflictError: 저장된 버전이 expected_version과 다를 때
        """
        doc_ref = self._ref(collection, doc_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _update_in_transaction(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentNotFoundError(collection, doc_id)
            data = snapshot.to_dict() or {}
            current_version = int(data.get(version_field) or 0)
            if current_version != expected_version:
                raise CommentTreeConflictError(doc_id, expected_version, current_version)
            new_version = current_version + 1
            transaction.update(doc_ref, dict(updates, **{version_field: new_version}))
            return new_version

        try:
            with _translate_errors('compare_and_set', collection, doc_id):
                return _update_in_transaction(transaction)
        except (DocumentNotFoundError, CommentTreeConflictError, StoreTransportError):
            raise
        except ValueError as e:
            # transactional 데코레이터가 커밋 재시도 횟수를 모두 소진한 경우
            logger.warning(f"트랜잭션 커밋 실패 ({collection}/{doc_id}): {e}")
            raise StoreTransportError(f"compare_and_set 실패: {e}", transient=True) from e

    def update_array(self, collection: str, doc_id: str, field: str, value: Any, add: bool) -> None:
        """배열 필드에 값을 원자적으로 추가(ArrayUnion)하거나 제거(ArrayRemove)합니다."""
        transform = firestore.ArrayUnion([value]) if add else firestore.ArrayRemove([value])
        with _translate_errors('update_array', collection, doc_id):
            self._ref(collection, doc_id).update({field: transform})

    def query_page(self, collection: str, order_by: str, limit: int,
                   start_after: Optional[str] = None,
                   descending: bool = True) -> Tuple[List[Tuple[str, Dict[str, Any]]], Optional[str]]:
        """
        order_by 기준으로 정렬된 한 페이지를 조회합니다.
        start_after는 이전 페이지 마지막 문서의 ID이며, 존재하지 않는 커서는 무시합니다.

        :return: ([(doc_id, data), ...], 마지막 문서 ID)
        """
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        collection_ref = self.db.collection(collection)
        with _translate_errors('query_page', collection, start_after):
            query = collection_ref.order_by(order_by, direction=direction)
            if start_after:
                cursor_doc = collection_ref.document(start_after).get()
                if cursor_doc.exists:
                    query = query.start_after(cursor_doc)
                else:
                    logger.warning(f"존재하지 않는 커서를 무시합니다: {collection}/{start_after}")
            docs = [(doc.id, doc.to_dict()) for doc in query.limit(limit).stream()]
        last_doc_id = docs[-1][0] if docs else None
        return docs, last_doc_id

    def query_in(self, collection: str, field: str, values: Iterable[Any]) -> List[Tuple[str, Dict[str, Any]]]:
        """field 값이 values 중 하나인 문서를 모두 조회합니다. 'in' 쿼리 제한에 맞춰 나눠서 요청합니다."""
        values = list(values)
        results: List[Tuple[str, Dict[str, Any]]] = []
        collection_ref = self.db.collection(collection)
        for i in range(0, len(values), IN_QUERY_CHUNK):
            chunk = values[i:i + IN_QUERY_CHUNK]
            with _translate_errors('query_in', collection):
                docs = collection_ref.where(field, 'in', chunk).stream()
                results.extend((doc.id, doc.to_dict()) for doc in docs)
        return results
