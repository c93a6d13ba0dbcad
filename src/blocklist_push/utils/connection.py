"""Transport error classification shared by the device session."""
import asyncio

import paramiko
from ncclient.transport.errors import TransportError

# Errors a transport may raise mid-step that still mean "this step failed"
# rather than "the program is broken"
TRANSPORT_EXCEPTIONS = (
    asyncio.TimeoutError,
    ConnectionError,
    TimeoutError,
    OSError,
    EOFError,
    paramiko.SSHException,
    TransportError,
)


def describe_error(exc: BaseException) -> str:
    """Short text for an exception, falling back to its class name."""
    text = str(exc).strip()
    name = exc.__class__.__name__
    return f"{name}: {text}" if text else name
