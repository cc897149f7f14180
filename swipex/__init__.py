# swipex/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from swipex.core.config import config_by_name
from swipex.core.exceptions import StoreTransportError

# - API 블루프린트
from swipex.api.comments.routes import comments_bp
from swipex.api.listings.routes import listings_bp
from swipex.api.users.routes import users_bp

# - 서비스 모듈
from swipex.comments.sync import CommentTreeSync
from swipex.services.document_store import FirestoreDocumentStore
from swipex.api.comments.services import CommentService
from swipex.api.listings.services import ListingService
from swipex.api.users.services import UserService


def _init_firebase(app):
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    options = {}
    if app.config.get('FIREBASE_PROJECT_ID'):
        options['projectId'] = app.config['FIREBASE_PROJECT_ID']
    firebase_admin.initialize_app(cred, options)


def create_app(config_name=None, document_store=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production'. 없으면 FLASK_ENV를 사용합니다.
    :param document_store: 저장소 어댑터. 주어지면 Firebase 초기화를 건너뜁니다(테스트용).
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if document_store is None:
        _init_firebase(app)
        document_store = FirestoreDocumentStore()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 사용자 서비스 (프로필 캐시 소유)
    app.services['users'] = UserService(
        document_store,
        cache_maxsize=app.config['USER_CACHE_MAXSIZE'],
        cache_ttl=app.config['USER_CACHE_TTL_SECONDS']
    )

    # 5-2. 댓글 트리 동기화 어댑터 및 도메인 서비스
    comment_sync = CommentTreeSync(document_store, deadline=app.config['COMMENT_WRITE_DEADLINE'])
    app.services['comments'] = CommentService(
        comment_sync,
        user_service=app.services['users'],
        max_length=app.config['COMMENT_MAX_LENGTH']
    )
    app.services['listings'] = ListingService(
        document_store,
        user_service=app.services['users'],
        page_size=app.config['FEED_PAGE_SIZE'],
        max_page_size=app.config['FEED_MAX_PAGE_SIZE'],
        search_scan_limit=app.config['SEARCH_SCAN_LIMIT']
    )
    logging.info("Services initialized successfully")

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(listings_bp, url_prefix='/api/listings')
    app.register_blueprint(comments_bp, url_prefix='/api/listings')
    app.register_blueprint(users_bp, url_prefix='/api/users')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(StoreTransportError)
    def handle_store_transport_error(err):
        logging.error(f"저장소 통신 실패: {err}")
        response = {"error_code": "STORE_UNAVAILABLE", "message": "잠시 후 다시 시도해주세요."}
        return jsonify(response), 503

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        if isinstance(err, HTTPException):
            return err
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
