"""Reddit "things": JSON objects tagged with a ``kind`` discriminator.

Every payload looks like ``{"kind": "t1", "data": {...}}``. The kind selects
the model used for ``data``; listings and comment replies nest further
things, so decoding recurses through the same discriminated union.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from snooclient.errors import JSONError

KIND_COMMENT = "t1"
KIND_ACCOUNT = "t2"
KIND_LINK = "t3"
KIND_MESSAGE = "t4"
KIND_SUBREDDIT = "t5"
KIND_AWARD = "t6"
KIND_LISTING = "Listing"
KIND_MORE = "more"
KIND_SUBREDDIT_SETTINGS = "subreddit_settings"
KIND_KARMA_LIST = "KarmaList"
KIND_TROPHY_LIST = "TrophyList"
KIND_USER_LIST = "UserList"
KIND_LIVE_THREAD = "LiveUpdateEvent"
KIND_LIVE_THREAD_UPDATE = "LiveUpdate"
KIND_MOD_ACTION = "modaction"
KIND_MULTI = "LabeledMulti"
KIND_WIKI_PAGE = "wikipage"
KIND_WIKI_PAGE_LISTING = "wikipagelisting"
KIND_STYLESHEET = "stylesheet"


def _empty_string_to_none(value: Any) -> Any:
    # Reddit sends "" instead of null when a thing has no replies
    return None if value == "" else value


# -----------------------------------------------------------------------------
# Payloads
# -----------------------------------------------------------------------------


class ThingData(BaseModel):
    """Fields common to every thing payload.

    Unknown fields are kept, the remote schema is much wider than what is
    typed here.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None


class CommentData(ThingData):
    ups: int = 0
    downs: int = 0
    likes: bool | None = None
    created: float | None = None
    created_utc: float | None = None

    approved_by: str | None = None
    author: str = ""
    author_flair_css_class: str | None = None
    author_flair_text: str | None = None
    banned_by: str | None = None
    body: str = ""
    body_html: str | None = None
    distinguished: str | None = None
    edited: bool | float = False
    gilded: int = 0
    link_author: str | None = None
    link_id: str | None = None
    link_title: str | None = None
    link_url: str | None = None
    num_reports: int | None = None
    parent_id: str | None = None
    replies: Listing | None = None
    saved: bool = False
    score: int = 0
    subreddit: str | None = None
    subreddit_name_prefixed: str | None = None
    subreddit_id: str | None = None

    @field_validator("replies", mode="before")
    @classmethod
    def normalize_replies(cls, value: Any) -> Any:
        return _empty_string_to_none(value)


class AccountData(ThingData):
    created: float | None = None
    created_utc: float | None = None

    comment_karma: int = 0
    link_karma: int = 0
    has_mail: bool | None = None
    has_mod_mail: bool | None = None
    has_verified_email: bool | None = None
    inbox_count: int | None = None
    is_friend: bool = False
    is_gold: bool = False
    is_mod: bool = False
    modhash: str | None = None
    over_18: bool = False


class LinkData(ThingData):
    ups: int = 0
    downs: int = 0
    likes: bool | None = None
    created: float | None = None
    created_utc: float | None = None

    author: str = ""
    author_flair_css_class: str | None = None
    author_flair_text: str | None = None
    clicked: bool = False
    distinguished: str | None = None
    domain: str | None = None
    edited: bool | float = False
    hidden: bool = False
    is_self: bool = False
    link_flair_css_class: str | None = None
    link_flair_text: str | None = None
    locked: bool = False
    media: dict[str, Any] | None = None
    media_embed: dict[str, Any] | None = None
    num_comments: int = 0
    over_18: bool = False
    permalink: str = ""
    saved: bool = False
    score: int = 0
    selftext: str = ""
    selftext_html: str | None = None
    stickied: bool = False
    subreddit: str | None = None
    subreddit_id: str | None = None
    thumbnail: str | None = None
    title: str = ""
    url: str | None = None


class MessageData(ThingData):
    created: float | None = None
    created_utc: float | None = None

    author: str | None = None
    body: str = ""
    body_html: str | None = None
    context: str = ""
    dest: str | None = None
    first_message_name: str | None = None
    likes: bool | None = None
    link_title: str | None = None
    new: bool = False
    parent_id: str | None = None
    replies: Listing | None = None
    subject: str = ""
    subreddit: str | None = None
    was_comment: bool = False

    @field_validator("replies", mode="before")
    @classmethod
    def normalize_replies(cls, value: Any) -> Any:
        return _empty_string_to_none(value)


class SubredditData(ThingData):
    created: float | None = None
    created_utc: float | None = None

    accounts_active: int | None = None
    comment_score_hide_mins: int | None = None
    description: str = ""
    description_html: str | None = None
    display_name: str = ""
    display_name_prefixed: str | None = None
    header_img: str | None = None
    header_size: list[int] | None = None
    header_title: str | None = None
    over18: bool = False
    public_description: str = ""
    public_traffic: bool = False
    subscribers: int | None = None
    submission_type: str | None = None
    submit_link_label: str | None = None
    submit_text_label: str | None = None
    subreddit_type: str | None = None
    title: str = ""
    url: str = ""
    user_is_banned: bool | None = None
    user_is_contributor: bool | None = None
    user_is_moderator: bool | None = None
    user_is_subscriber: bool | None = None


class AwardData(ThingData):
    award_id: str | None = None
    description: str | None = None
    icon_40: str | None = None
    icon_70: str | None = None
    url: str | None = None


class MoreData(ThingData):
    children: list[str] = Field(default_factory=list)
    count: int = 0
    depth: int = 0
    parent_id: str | None = None


class ListingData(BaseModel):
    """A page of things with opaque pagination cursors."""

    model_config = ConfigDict(extra="allow")

    after: str | None = None
    before: str | None = None
    dist: int | None = None
    modhash: str | None = None
    children: list[Thing] = Field(default_factory=list)


class SubredditKarma(BaseModel):
    sr: str
    comment_karma: int = 0
    link_karma: int = 0


class TrophyListData(BaseModel):
    trophies: list[Award] = Field(default_factory=list)


class UserListEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str = ""
    date: float | None = None
    rel_id: str | None = None


class UserListData(BaseModel):
    children: list[UserListEntry] = Field(default_factory=list)


class WikiPageData(BaseModel):
    model_config = ConfigDict(extra="allow")

    content_md: str = ""
    content_html: str | None = None
    may_revise: bool = False
    revision_date: float | None = None
    revision_id: str | None = None
    revision_by: Account | None = None


# -----------------------------------------------------------------------------
# Things
# -----------------------------------------------------------------------------


class _Thing(BaseModel):
    """Shared surface of every thing."""

    kind: str
    data: Any = None

    @property
    def id(self) -> str | None:
        """The thing's base36 ID, when its payload has one."""
        return getattr(self.data, "id", None)

    @property
    def name(self) -> str | None:
        """The thing's fullname (e.g. ``t3_abc123``), when its payload has one."""
        return getattr(self.data, "name", None)


class Comment(_Thing):
    kind: Literal["t1"] = KIND_COMMENT
    data: CommentData = Field(default_factory=CommentData)


class Account(_Thing):
    kind: Literal["t2"] = KIND_ACCOUNT
    data: AccountData = Field(default_factory=AccountData)


class Link(_Thing):
    kind: Literal["t3"] = KIND_LINK
    data: LinkData = Field(default_factory=LinkData)


class Message(_Thing):
    kind: Literal["t4"] = KIND_MESSAGE
    data: MessageData = Field(default_factory=MessageData)


class Subreddit(_Thing):
    kind: Literal["t5"] = KIND_SUBREDDIT
    data: SubredditData = Field(default_factory=SubredditData)


class Award(_Thing):
    kind: Literal["t6"] = KIND_AWARD
    data: AwardData = Field(default_factory=AwardData)


class More(_Thing):
    """Comments omitted from a comment tree, fetchable via /api/morechildren."""

    kind: Literal["more"] = KIND_MORE
    data: MoreData = Field(default_factory=MoreData)


class Listing(_Thing):
    """A paginated collection of things.

    ``after`` and ``before`` are handed back to the server unchanged.
    """

    kind: Literal["Listing"] = KIND_LISTING
    data: ListingData = Field(default_factory=ListingData)

    @property
    def children(self) -> list[Thing]:
        return self.data.children

    @property
    def after(self) -> str | None:
        return self.data.after

    @property
    def before(self) -> str | None:
        return self.data.before

    @property
    def modhash(self) -> str | None:
        return self.data.modhash


class KarmaList(_Thing):
    kind: Literal["KarmaList"] = KIND_KARMA_LIST
    data: list[SubredditKarma] = Field(default_factory=list)


class TrophyList(_Thing):
    kind: Literal["TrophyList"] = KIND_TROPHY_LIST
    data: TrophyListData = Field(default_factory=TrophyListData)


class UserList(_Thing):
    kind: Literal["UserList"] = KIND_USER_LIST
    data: UserListData = Field(default_factory=UserListData)


class ModAction(_Thing):
    kind: Literal["modaction"] = KIND_MOD_ACTION
    data: ThingData = Field(default_factory=ThingData)


class Multi(_Thing):
    kind: Literal["LabeledMulti"] = KIND_MULTI
    data: ThingData = Field(default_factory=ThingData)


class WikiPage(_Thing):
    kind: Literal["wikipage"] = KIND_WIKI_PAGE
    data: WikiPageData = Field(default_factory=WikiPageData)


class WikiPageListing(_Thing):
    kind: Literal["wikipagelisting"] = KIND_WIKI_PAGE_LISTING
    data: list[str] = Field(default_factory=list)


class SubredditSettings(_Thing):
    kind: Literal["subreddit_settings"] = KIND_SUBREDDIT_SETTINGS
    data: ThingData = Field(default_factory=ThingData)


class StyleSheet(_Thing):
    kind: Literal["stylesheet"] = KIND_STYLESHEET
    data: ThingData = Field(default_factory=ThingData)


class LiveThread(_Thing):
    kind: Literal["LiveUpdateEvent"] = KIND_LIVE_THREAD
    data: ThingData = Field(default_factory=ThingData)


class LiveThreadUpdate(_Thing):
    kind: Literal["LiveUpdate"] = KIND_LIVE_THREAD_UPDATE
    data: ThingData = Field(default_factory=ThingData)


Thing = Annotated[
    Union[
        Comment,
        Account,
        Link,
        Message,
        Subreddit,
        Award,
        More,
        Listing,
        KarmaList,
        TrophyList,
        UserList,
        ModAction,
        Multi,
        WikiPage,
        WikiPageListing,
        SubredditSettings,
        StyleSheet,
        LiveThread,
        LiveThreadUpdate,
    ],
    Field(discriminator="kind"),
]

_THING_MODELS: tuple[type[_Thing], ...] = get_args(get_args(Thing)[0])

for _model in (CommentData, MessageData, ListingData, TrophyListData, WikiPageData, *_THING_MODELS):
    _model.model_rebuild()

THING_KINDS: dict[str, type[_Thing]] = {
    model.model_fields["kind"].default: model for model in _THING_MODELS
}

_thing_adapter: TypeAdapter[Thing] = TypeAdapter(Thing)


def _decode_error(exc: ValidationError, data: bytes | None) -> JSONError:
    return JSONError(f"error decoding thing: {exc}", data=data)


def parse_thing(obj: Any) -> Thing:
    """Decode an already-parsed JSON object into its concrete thing.

    Args:
        obj: A mapping with ``kind`` and ``data`` keys.

    Returns:
        The model selected by ``kind``.

    Raises:
        JSONError: If the kind is missing or unknown, or ``data`` does not fit.
    """
    if isinstance(obj, dict) and obj.get("kind") not in THING_KINDS:
        raise JSONError(f"unknown thing kind {obj.get('kind')!r}")
    try:
        return _thing_adapter.validate_python(obj)
    except ValidationError as exc:
        raise _decode_error(exc, None) from exc


def parse_thing_json(data: bytes | str) -> Thing:
    """Decode raw JSON into its concrete thing.

    Raises:
        JSONError: If the payload is not valid JSON or not a known thing.
            The raw bytes are kept on the error.
    """
    raw = data.encode() if isinstance(data, str) else data
    try:
        return _thing_adapter.validate_json(raw)
    except ValidationError as exc:
        raise _decode_error(exc, raw) from exc
