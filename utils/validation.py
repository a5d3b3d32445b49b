"""
Input Validation Schemas

Provides Pydantic schemas for validating API inputs.

Usage:
    from utils.validation import validate_request

    @bp.route('/tasks/<task_id>/files', methods=['POST'])
    @validate_request(AddFileSchema)
    def add_file(task_id, validated_data):
        # validated_data is guaranteed to match AddFileSchema
        ...
"""

from functools import wraps

from flask import request, jsonify
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError


# =============================================================================
# BASE SCHEMAS
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(
        str_strip_whitespace=True,  # Auto-trim strings
        validate_assignment=True,    # Validate on assignment
        extra='forbid'               # Reject unknown fields
    )


# =============================================================================
# TASK SCHEMAS
# =============================================================================

class AddFileSchema(BaseSchema):
    """Schema for appending a file URL to a task."""
    model_config = ConfigDict(extra='ignore')

    url: StrictStr = Field(..., min_length=1, max_length=8192, description="File URL")


# =============================================================================
# DECORATORS
# =============================================================================

def validate_request(schema_class: type[BaseModel]):
    """
    Decorator to validate the JSON request body against a Pydantic schema.

    The body must be a JSON object; anything else is rejected with 400.

    Error Response:
        {
            'success': False,
            'error': 'invalid request body',
            'validation_errors': [
                {
                    'field': 'url',
                    'message': 'Field required',
                    'type': 'missing'
                }
            ]
        }
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)

            if not isinstance(data, dict):
                return jsonify({
                    'success': False,
                    'error': 'invalid request body',
                    'validation_errors': [{
                        'field': 'body',
                        'message': 'Request body must be a JSON object',
                        'type': 'json_invalid'
                    }]
                }), 400

            try:
                validated_data = schema_class(**data)
            except ValidationError as e:
                errors = [
                    {
                        'field': '.'.join(str(loc) for loc in error['loc']),
                        'message': error['msg'],
                        'type': error['type']
                    }
                    for error in e.errors()
                ]
                return jsonify({
                    'success': False,
                    'error': 'invalid request body',
                    'validation_errors': errors
                }), 400

            return f(*args, validated_data=validated_data, **kwargs)

        return decorated_function
    return decorator
