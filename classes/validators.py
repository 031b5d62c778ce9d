from utils.errors import ValidationError
from utils.helpers import parse_bool


def validate_required(field_name, value):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required.")
    return value


def validate_length(field_name, value, max_length):
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text.")
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must be {max_length} characters or fewer.")
    return value


def validate_choice(field_name, value, choices):
    if value not in choices:
        raise ValidationError(f"{field_name} must be one of: {', '.join(choices)}.")
    return value


def validate_int(field_name, value, minimum=None, maximum=None, nullable=False):
    if value is None:
        if nullable:
            return None
        raise ValidationError(f"{field_name} is required.")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer.")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}.")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{field_name} must be at most {maximum}.")
    return value


def validate_bool(field_name, value):
    try:
        return parse_bool(value, field_name)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def validate_id_list(field_name, values):
    if not isinstance(values, list):
        raise ValidationError(f"{field_name} must be a list.")
    for value in values:
        validate_int(field_name, value)
    return values
