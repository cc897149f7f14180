# swipex/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from swipex.api.listings.schemas import ListingResponseSchema
from swipex.api.users.schemas import UserProfileResponseSchema, UserProfileUpdateSchema, ProfilePicUpdateSchema
from swipex.core.exceptions import StoreTransportError


users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    """
    현재 사용자의 프로필 정보(이름, 사용자 이름, 소개, 대명사)를 수정합니다.
    """
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        changes = UserProfileUpdateSchema().load(request.get_json() or {})
        profile = user_service.update_profile(user_id, changes)
        return jsonify(UserProfileResponseSchema().dump(profile)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError as e:
        logging.error(f"프로필 수정 중 오류 발생 (user_id: {user_id}): {e}")
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "프로필 수정 중 오류가 발생했습니다."}), 503


@users_bp.route('/me/profile-pic', methods=['PUT'])
@jwt_required()
def update_my_profile_pic():
    """
    업로드가 끝난 프로필 사진의 URL로 프로필 사진을 교체합니다.
    """
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        data = ProfilePicUpdateSchema().load(request.get_json() or {})
        profile = user_service.update_profile_pic(user_id, data['profile_pic'])
        return jsonify(UserProfileResponseSchema().dump(profile)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError:
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "프로필 사진 변경 중 오류가 발생했습니다."}), 503


@users_bp.route('/me/saved-listings', methods=['GET'])
@jwt_required()
def get_my_saved_listings():
    """
    현재 사용자가 저장한 게시물 목록을 조회합니다.
    """
    listing_service = current_app.services['listings']
    user_id = get_jwt_identity()
    try:
        listings = listing_service.get_saved_listings(user_id)
        return jsonify({"listings": ListingResponseSchema(many=True).dump(listings)}), 200
    except ValueError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError:
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "저장한 게시물 조회 중 오류가 발생했습니다."}), 503


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(user_id: str):
    """
    특정 사용자의 공개 프로필을 조회합니다.
    """
    user_service = current_app.services['users']
    profile = user_service.get_profile(user_id)
    if not profile:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": "사용자를 찾을 수 없습니다."}), 404
    return jsonify(UserProfileResponseSchema().dump(profile)), 200


@users_bp.route('/<string:user_id>/listings', methods=['GET'])
@jwt_required(optional=True)
def get_user_listings(user_id: str):
    """
    특정 사용자가 등록한 게시물 목록을 최신순으로 조회합니다. (프로필 화면)
    """
    listing_service = current_app.services['listings']
    viewer_id = get_jwt_identity()
    try:
        listings = listing_service.get_user_listings(user_id, viewer_id)
        return jsonify({"listings": ListingResponseSchema(many=True).dump(listings)}), 200
    except ValueError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except StoreTransportError:
        return jsonify({"error_code": "STORE_UNAVAILABLE", "message": "게시물 목록 조회 중 오류가 발생했습니다."}), 503
