# swipex/api/comments/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE


class CommentCreateSchema(Schema):
    """
    POST /api/listings/{listing_id}/comments
    댓글/답글 작성 요청의 데이터 형식을 정의하고 유효성을 검사합니다.
    """
    # 최대 길이는 설정값(COMMENT_MAX_LENGTH)에 따라 서비스에서 검사합니다.
    text = fields.Str(required=True, validate=validate.Length(min=1, error="댓글 내용을 입력해주세요."))
    # 답글인 경우 부모 댓글 ID
    parent_comment_id = fields.Str(load_default=None, allow_none=True)


class CommentListQuerySchema(Schema):
    """GET /api/listings/{listing_id}/comments 쿼리 파라미터"""
    class Meta:
        unknown = EXCLUDE

    flat = fields.Bool(load_default=False)
    max_depth = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=0))


class CommentAuthorSchema(Schema):
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    profile_pic = fields.Str(allow_none=True)


class CommentResponseSchema(Schema):
    """
    댓글 정보 응답을 위한 최종 JSON 형식을 정의합니다.
    중첩 응답은 replies를, 평면 응답은 depth/parent_comment_id를 채웁니다.
    """
    comment_id = fields.Str(required=True)
    text = fields.Str(required=True)
    author = fields.Nested(CommentAuthorSchema, required=True)
    created_at = fields.DateTime(required=True)
    like_count = fields.Int(required=True)
    is_liked = fields.Bool(dump_default=False)
    reply_count = fields.Int(dump_default=0)
    replies = fields.List(fields.Nested(lambda: CommentResponseSchema()))
    depth = fields.Int()
    parent_comment_id = fields.Str(allow_none=True)


class CommentTreeResponseSchema(Schema):
    listing_id = fields.Str(required=True)
    comments = fields.List(fields.Nested(CommentResponseSchema), required=True)
    comment_count = fields.Int(required=True)
    version = fields.Int(required=True)


class CommentCreateResponseSchema(Schema):
    comment = fields.Nested(CommentResponseSchema, required=True)
    parent_comment_id = fields.Str(allow_none=True)
    comments = fields.List(fields.Nested(CommentResponseSchema), required=True)
    version = fields.Int(required=True)


class CommentLikeResponseSchema(Schema):
    comment_id = fields.Str(required=True)
    is_liked = fields.Bool(required=True)
    like_count = fields.Int(required=True)
    version = fields.Int(required=True)
