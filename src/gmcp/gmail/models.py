"""Normalized Gmail records returned by GmailClient."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EmailMessage(BaseModel):
    """A message reduced to the fields tools work with.

    ``body`` is None when the body was not requested; a fetched message with
    no readable content carries the ``"(no body)"`` sentinel instead.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    thread_id: str
    subject: str
    from_: str = Field(alias="from")
    to: str
    date: str
    snippet: str
    body: str | None = None
    labels: list[str] | None = None


class LabelColor(BaseModel):
    text_color: str
    background_color: str


class GmailLabel(BaseModel):
    """A Gmail label. Optional fields are None when the API omitted them."""

    id: str
    name: str
    type: Literal["system", "user"]
    message_list_visibility: Literal["show", "hide"] | None = None
    label_list_visibility: Literal["labelShow", "labelShowIfUnread", "labelHide"] | None = None
    messages_total: int | None = None
    messages_unread: int | None = None
    color: LabelColor | None = None


class AttachmentInfo(BaseModel):
    """Identifies an attachment; content is fetched separately by id."""

    filename: str
    mime_type: str
    size: int
    attachment_id: str


class SearchPage(BaseModel):
    """One page of search results.

    ``next_page_token`` is the provider's opaque token, passed through as is.
    """

    emails: list[EmailMessage]
    total_estimate: int
    has_more: bool
    next_page_token: str | None = None

    @model_validator(mode="after")
    def _check_pagination(self) -> "SearchPage":
        if self.has_more != (self.next_page_token is not None):
            raise ValueError("has_more must be true exactly when next_page_token is set")
        return self


class SendResult(BaseModel):
    id: str
    thread_id: str
    label_ids: list[str] | None = None


class DraftResult(BaseModel):
    id: str
    message_id: str
    thread_id: str
