import datetime
import logging
from uuid import uuid4

import chardet
import dateutil.parser
import dateutil.tz

LOG = logging.getLogger(__name__)


def strForEach(value):
    try:
        return str(value)
    except (UnicodeDecodeError, UnicodeEncodeError):
        LOG.debug("%r", value, exc_info=1)
        return '{!r}'.format(value)


def sprint(*args, **kwargs):
    """sprint: "safe" print - ignore IOError"""
    try:
        print(*list(map(strForEach, args)), **kwargs)
    except IOError:
        LOG.debug("sprint ignore IOError", exc_info=1)
    except (UnicodeEncodeError, UnicodeDecodeError):
        print('codec error', repr(args))
        LOG.debug("%r", args, exc_info=1)


def utcNow():
    return datetime.datetime.now(dateutil.tz.tzutc())


def newJobId() -> str:
    """A globally unique job identifier: a uuid4 without dashes."""
    return uuid4().hex


def toTimestamp(value: datetime.datetime) -> str:
    return value.isoformat()


def fromTimestamp(value: str) -> datetime.datetime:
    parsed = dateutil.parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dateutil.tz.tzutc())
    return parsed


def autoDecode(byteArray):
    if not byteArray:
        return ""
    detected = chardet.detect(byteArray)
    encoding = detected['encoding']
    if not encoding or detected['confidence'] < 0.5:  # very arbitrary
        encoding = 'utf-8'
    return byteArray.decode(encoding, errors='replace')
