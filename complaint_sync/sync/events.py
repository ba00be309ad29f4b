"""Live channel envelope adapter

The only place that looks at raw wire tags. Everything downstream works
with ChangeNotification / ChangeKind.
"""
import json
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..domain.enums import CHANGE_TAGS, CONTROL_TAGS, ChangeKind
from ..domain.errors import MalformedMessageError
from ..domain.models import ChangeNotification, Complaint
from ..utils.logger import get_logger

logger = get_logger(__name__)

RawMessage = Union[str, bytes, bytearray, Mapping[str, Any]]

ID_KEYS = ("_id", "id", "complaintId")


def extract_complaint_id(data: Mapping[str, Any]) -> Optional[str]:
    """First non-empty id spelling in a complaint-shaped payload"""
    for key in ID_KEYS:
        value = data.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value
    return None


def decode_message(raw: RawMessage) -> Mapping[str, Any]:
    """Decode a raw frame into a JSON object"""
    if isinstance(raw, Mapping):
        return raw

    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        message = json.loads(raw)
    except (UnicodeDecodeError, TypeError, ValueError) as e:
        raise MalformedMessageError(f"Undecodable live message: {e}")

    if not isinstance(message, dict):
        raise MalformedMessageError(
            "Live message is not a JSON object",
            details={"type": type(message).__name__}
        )
    return message


def parse_envelope(raw: RawMessage) -> Optional[ChangeNotification]:
    """
    Normalize one ``{type, data}`` frame.

    Returns:
        ChangeNotification, or None for control frames and unrecognized tags

    Raises:
        MalformedMessageError: Frame is not an envelope, or a change frame
            lacks an id or a valid complaint record
    """
    message = decode_message(raw)

    tag = message.get("type")
    if not isinstance(tag, str) or not tag:
        raise MalformedMessageError("Live message has no type tag")

    kind = CHANGE_TAGS.get(tag)
    if kind is None:
        if tag not in CONTROL_TAGS:
            logger.debug(f"Ignoring live message with unrecognized tag '{tag}'")
        return None

    data = message.get("data")
    if not isinstance(data, Mapping):
        raise MalformedMessageError(f"'{tag}' message has no data object")

    complaint_id = extract_complaint_id(data)
    if complaint_id is None:
        raise MalformedMessageError(f"'{tag}' message data has no id")

    if kind == ChangeKind.DELETED:
        return ChangeNotification.deletion(complaint_id)

    try:
        complaint = Complaint.model_validate(dict(data))
    except PydanticValidationError as e:
        raise MalformedMessageError(
            f"'{tag}' message carries an invalid complaint",
            details={"complaint_id": complaint_id, "errors": e.errors(include_url=False)}
        )
    return ChangeNotification.upsert(complaint, kind)
