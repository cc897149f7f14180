# swipex/api/comments/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from swipex.api.comments.schemas import (
    CommentCreateSchema,
    CommentListQuerySchema,
    CommentTreeResponseSchema,
    CommentCreateResponseSchema,
    CommentLikeResponseSchema,
)
from swipex.core.exceptions import (
    CommentNotFoundError,
    CommentTreeConflictError,
    ListingNotFoundError,
    MalformedCommentError,
    StoreTransportError,
)


comments_bp = Blueprint('comments_bp', __name__)


def _corrupted_tree_response():
    # 저장된 댓글 트리의 형식이 잘못되어 읽을 수 없는 경우
    return jsonify({"error_code": "COMMENT_TREE_CORRUPTED", "message": "댓글 데이터를 읽을 수 없습니다. 관리자에게 문의해주세요."}), 500


@comments_bp.route('/<string:listing_id>/comments', methods=['GET'])
@jwt_required(optional=True)
def get_comments(listing_id: str):
    """
    게시물의 댓글 트리를 조회합니다.
    - flat=true 이면 depth가 붙은 평면 목록으로 반환합니다.
    """
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        params = CommentListQuerySchema().load(request.args)
        result = comment_service.get_comments(listing_id, user_id, params['flat'], params['max_depth'])
        return jsonify(CommentTreeResponseSchema().dump(result)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ListingNotFoundError as e:
        return jsonify({"error_code": "LISTING_NOT_FOUND", "message": str(e)}), 404
    except MalformedCommentError:
        return _corrupted_tree_response()
    except StoreTransportError as e:
        logging.error(f"댓글 조회 중 오류 발생 (listing_id: {listing_id}): {e}")
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "댓글을 불러오지 못했습니다. 잠시 후 다시 시도해주세요."}), 503


@comments_bp.route('/<string:listing_id>/comments', methods=['POST'])
@jwt_required()
def create_comment(listing_id: str):
    """
    게시물에 새 댓글을 작성하거나, parent_comment_id가 있으면 답글을 작성합니다.
    - 성공 시, 생성된 댓글과 갱신된 전체 트리를 201 Created와 함께 반환합니다.
    """
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        data = CommentCreateSchema().load(request.get_json(silent=True) or {})
        result = comment_service.create_comment(listing_id, user_id, data['text'], data['parent_comment_id'])
        return jsonify(CommentCreateResponseSchema().dump(result)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ListingNotFoundError as e:
        return jsonify({"error_code": "LISTING_NOT_FOUND", "message": str(e)}), 404
    except MalformedCommentError:
        return _corrupted_tree_response()
    except CommentNotFoundError as e: # 답글 대상 댓글이 없는 경우
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": str(e)}), 404
    except CommentTreeConflictError:
        return jsonify({"error_code": "COMMENT_WRITE_CONFLICT", "message": "다른 사용자의 변경과 충돌했습니다. 다시 시도해주세요."}), 409
    except StoreTransportError:
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "댓글 작성 중 오류가 발생했습니다."}), 503


@comments_bp.route('/<string:listing_id>/comments/<string:comment_id>/like', methods=['POST'])
@jwt_required()
def toggle_comment_like(listing_id: str, comment_id: str):
    """
    특정 댓글(또는 답글)의 좋아요를 누르거나 취소합니다.
    """
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        result = comment_service.toggle_comment_like(listing_id, comment_id, user_id)
        return jsonify(CommentLikeResponseSchema().dump(result)), 200
    except ListingNotFoundError as e:
        return jsonify({"error_code": "LISTING_NOT_FOUND", "message": str(e)}), 404
    except MalformedCommentError:
        return _corrupted_tree_response()
    except CommentNotFoundError as e:
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": str(e)}), 404
    except CommentTreeConflictError:
        return jsonify({"error_code": "COMMENT_WRITE_CONFLICT", "message": "다른 사용자의 변경과 충돌했습니다. 다시 시도해주세요."}), 409
    except StoreTransportError:
        return jsonify({"error_code": "LIKE_TOGGLE_FAILED", "message": "좋아요 처리 중 오류가 발생했습니다."}), 503
