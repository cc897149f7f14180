# swipex/api/users/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, pre_load, ValidationError, EXCLUDE


class UserProfileResponseSchema(Schema):
    """공개 프로필 응답 스키마. 저장 목록은 본인에게만 별도 API로 제공합니다."""
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    profile_pic = fields.Str(allow_none=True)
    full_name = fields.Str(allow_none=True)
    description = fields.Str(allow_none=True)
    pronouns = fields.Str(allow_none=True)


class UserProfileUpdateSchema(Schema):
    """
    PATCH /api/users/me 요청 본문.
    - full_name은 앞뒤 공백을 제거하고, username은 공백 제거 후 소문자로 저장합니다.
    - 보낸 필드만 수정하며, 최소 한 개의 필드가 필요합니다.
    """
    class Meta:
        unknown = EXCLUDE

    full_name = fields.Str(validate=validate.Length(min=1, error="이름은 비워둘 수 없습니다."))
    username = fields.Str(validate=validate.Length(min=1, max=30, error="사용자 이름은 1~30자여야 합니다."))
    description = fields.Str(allow_none=True, validate=validate.Length(max=500))
    pronouns = fields.Str(allow_none=True, validate=validate.Length(max=30))

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        if isinstance(data.get('full_name'), str):
            data['full_name'] = data['full_name'].strip()
        if isinstance(data.get('username'), str):
            data['username'] = data['username'].strip().lower()
        return data

    @validates_schema
    def require_any_field(self, data, **kwargs):
        if not data:
            raise ValidationError("수정할 항목이 없습니다.")


class ProfilePicUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    profile_pic = fields.Url(required=True)
