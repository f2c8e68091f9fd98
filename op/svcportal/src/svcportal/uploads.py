# uploads.py
import logging
from typing import Any, Optional

from .dispatcher import Dispatcher
from .errors import ApiError
from .store import Store

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "Please select a file."
SUCCESS_MESSAGE = "Upload successful!"


class UploadWorkflow(Store):
    """Submit a certification document to ask for provider status.

    ``document`` is anything httpx accepts as a multipart file: a
    ``(filename, bytes, content_type)`` tuple or an open binary file.
    An authorization failure here is reported like any other error; it
    does not end the session.
    """

    def __init__(self, dispatcher: Dispatcher):
        super().__init__()
        self.dispatcher = dispatcher
        self.document: Any = None
        self.loading = False
        self.message = ""
        self.error: Optional[str] = None

    def set_document(self, document: Any) -> None:
        self._set(document=document, message="", error=None)

    def reset(self) -> None:
        self._set(document=None, loading=False, message="", error=None)

    async def submit(self) -> bool:
        if not self.document:
            self._set(error=NO_FILE_MESSAGE, message="")
            return False

        self._set(loading=True, message="", error=None)
        try:
            body = await self.dispatcher.post(
                "/provider-requests", files={"document": self.document},
            )
        except ApiError as e:
            self._set(loading=False, error=e.message or "Upload failed")
            return False

        message = SUCCESS_MESSAGE
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            message = body["message"]
        self._set(loading=False, message=message, document=None)
        logger.info("provider request submitted")
        return True
