# swipex/api/listings/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from swipex.api.listings.schemas import (
    FeedQuerySchema,
    SearchQuerySchema,
    ListingCreateSchema,
    ListingResponseSchema,
    ListingLikeResponseSchema,
    ListingSaveResponseSchema,
)
from swipex.core.exceptions import ListingNotFoundError, StoreTransportError


listings_bp = Blueprint('listings_bp', __name__)


@listings_bp.route('/', methods=['GET'])
@jwt_required(optional=True) # 비로그인 사용자도 피드는 볼 수 있도록 허용
def get_feed():
    """
    게시물 피드 목록을 커서 기반 페이지네이션으로 조회합니다.
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity() # 로그인 시 좋아요/저장 여부 확인, 비로그인 시 None
    try:
        params = FeedQuerySchema().load(request.args)
        listings, next_cursor, has_more = listing_service.get_feed(user_id, params['limit'], params['cursor'])
        return jsonify({
            "listings": ListingResponseSchema(many=True).dump(listings),
            "next_cursor": next_cursor,
            "has_more": has_more
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except StoreTransportError as e:
        logging.error(f"피드 조회 중 오류 발생: {e}")
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "게시물 목록 조회 중 오류가 발생했습니다."}), 503


@listings_bp.route('/', methods=['POST'])
@jwt_required()
def create_listing():
    """
    새 게시물을 등록합니다. 등록된 게시물은 작성자의 listings 목록에도 추가됩니다.
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity()
    try:
        data = ListingCreateSchema().load(request.get_json() or {})
        listing = listing_service.create_listing(user_id, data)
        return jsonify(ListingResponseSchema().dump(listing)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e: # 작성자 사용자 문서가 없는 경우
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError as e:
        logging.error(f"게시물 등록 중 오류 발생: {e}")
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "게시물 등록 중 오류가 발생했습니다."}), 503


@listings_bp.route('/search', methods=['GET'])
@jwt_required(optional=True)
def search_listings():
    """
    카테고리와 검색어로 게시물을 찾습니다. (탐색 화면)
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity()
    try:
        params = SearchQuerySchema().load(request.args)
        listings = listing_service.search(user_id, params['category'], params['q'], params['limit'])
        return jsonify({"listings": ListingResponseSchema(many=True).dump(listings)}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except StoreTransportError as e:
        logging.error(f"게시물 검색 중 오류 발생: {e}")
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "게시물 검색 중 오류가 발생했습니다."}), 503


@listings_bp.route('/<string:listing_id>', methods=['GET'])
@jwt_required(optional=True)
def get_listing(listing_id: str):
    """
    특정 게시물의 상세 정보를 조회합니다.
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity()
    try:
        listing = listing_service.get_listing(listing_id, user_id)
        return jsonify(ListingResponseSchema().dump(listing)), 200
    except ListingNotFoundError as e:
        return jsonify({"error_code": "LISTING_NOT_FOUND", "message": str(e)}), 404


@listings_bp.route('/<string:listing_id>/like', methods=['POST'])
@jwt_required()
def toggle_listing_like(listing_id: str):
    """
    게시물의 좋아요를 누르거나 취소합니다.
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity()
    try:
        result = listing_service.toggle_listing_like(listing_id, user_id)
        return jsonify(ListingLikeResponseSchema().dump(result)), 200
    except ListingNotFoundError as e:
        return jsonify({"error_code": "LISTING_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError:
        return jsonify({"error_code": "LIKE_TOGGLE_FAILED", "message": "좋아요 처리 중 오류가 발생했습니다."}), 503


@listings_bp.route('/<string:listing_id>/save', methods=['POST'])
@jwt_required()
def toggle_listing_save(listing_id: str):
    """
    게시물을 저장 목록에 추가하거나 제거합니다.
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity()
    try:
        result = listing_service.toggle_save(listing_id, user_id)
        return jsonify(ListingSaveResponseSchema().dump(result)), 200
    except ListingNotFoundError as e:
        return jsonify({"error_code": "LISTING_NOT_FOUND", "message": str(e)}), 404
    except ValueError as e: # 사용자 문서가 없는 경우
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError:
        return jsonify({"error_code": "SAVE_TOGGLE_FAILED", "message": "저장 처리 중 오류가 발생했습니다."}), 503
