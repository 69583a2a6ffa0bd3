from bson import ObjectId

from utils.errors import ValidationError

# -------------------------------
# ObjectId Guard
# -------------------------------

def parse_object_id(value, name: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if value is None:
        raise ValidationError(f"Missing {name}")
    try:
        return ObjectId(value)
    except Exception:
        raise ValidationError(f"Invalid {name}")


def parse_optional_object_id(value, name: str = "id") -> ObjectId | None:
    if value is None or value == "":
        return None
    return parse_object_id(value, name)
