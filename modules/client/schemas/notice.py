"""
User-Facing Notices.

Shape of the error messages the view layer shows when an action fails.
"""

from pydantic import BaseModel

from modules.client.core.exceptions import ApplicationError


class ErrorNotice(BaseModel):
    """Error detail presented to the user after a failed action."""

    title: str
    message: str
    code: str

    @classmethod
    def from_error(cls, title: str, error: ApplicationError) -> "ErrorNotice":
        return cls(title=title, message=error.message, code=error.code)
