# swipex/api/listings/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE


class FeedQuerySchema(Schema):
    """GET /api/listings 쿼리 파라미터의 유효성을 검사합니다."""
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=1))
    cursor = fields.Str(load_default=None, allow_none=True)


class SearchQuerySchema(Schema):
    """GET /api/listings/search 쿼리 파라미터. category가 'all'이거나 비어 있으면 전체 카테고리."""
    class Meta:
        unknown = EXCLUDE

    category = fields.Str(load_default=None, allow_none=True)
    q = fields.Str(load_default=None, allow_none=True)
    limit = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=1))


class ListingCreateSchema(Schema):
    """게시물 등록 요청 본문. 이미지는 클라이언트가 업로드한 뒤 URL만 전달합니다."""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(required=True, validate=validate.Length(min=1))
    item_category = fields.Str(required=True, validate=validate.Length(min=1))
    condition = fields.Str(required=True, validate=validate.Length(min=1))
    images = fields.List(fields.Str(), required=True, validate=validate.Length(min=1, error="이미지를 한 장 이상 등록해야 합니다."))
    videos = fields.List(fields.Str(), load_default=list)
    region = fields.Str(load_default=None, allow_none=True)
    city = fields.Str(load_default=None, allow_none=True)
    tags = fields.List(fields.Str(), load_default=list)
    exchange_for = fields.List(fields.Str(), load_default=list)
    is_open_to_any_offer = fields.Bool(load_default=False)


class OwnerSchema(Schema):
    """게시물 응답에 포함될 작성자 정보 스키마."""
    user_id = fields.Str(allow_none=True)
    username = fields.Str(allow_none=True)
    profile_picture = fields.Str(allow_none=True)


class ListingResponseSchema(Schema):
    """게시물 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    listing_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    title = fields.Str(allow_none=True)
    description = fields.Str(allow_none=True)
    owner = fields.Nested(OwnerSchema)
    item_category = fields.Str(allow_none=True)
    condition = fields.Str(allow_none=True)
    region = fields.Str(allow_none=True)
    city = fields.Str(allow_none=True)
    images = fields.List(fields.Str())
    videos = fields.List(fields.Str())
    tags = fields.List(fields.Str())
    exchange_for = fields.List(fields.Str())
    is_open_to_any_offer = fields.Bool(dump_default=False)
    post_status = fields.Str(allow_none=True)
    like_count = fields.Int(required=True)
    saved_count = fields.Int(required=True)
    comment_count = fields.Int(required=True)
    is_liked = fields.Bool(dump_default=False)
    is_saved = fields.Bool(dump_default=False)
    date_posted = fields.DateTime(allow_none=True)


class ListingLikeResponseSchema(Schema):
    listing_id = fields.Str(required=True)
    is_liked = fields.Bool(required=True)
    like_count = fields.Int(required=True)


class ListingSaveResponseSchema(Schema):
    listing_id = fields.Str(required=True)
    is_saved = fields.Bool(required=True)
    saved_count = fields.Int(required=True)
