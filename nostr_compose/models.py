from enum import IntEnum

from pydantic import BaseModel, ConfigDict


class PostKind(IntEnum):
    """Nostr event kinds a composed post can be published as."""

    TEXT = 1
    CHAT = 42


class ReferencedId(BaseModel):
    """Represents an event or pubkey referenced by a post.

    Attributes:
        ref_id: Hex id of the referenced event or pubkey
        relay_id: Relay hint where the reference can be found
        key: Tag name, "e" for events and "p" for pubkeys
    """

    model_config = ConfigDict(frozen=True)

    ref_id: str
    relay_id: str | None = None
    key: str = "e"


class Post(BaseModel):
    """Represents a composed post ready to be signed and published.

    Attributes:
        content: Post text, stripped of surrounding whitespace
        references: Referenced events and pubkeys, in tag order
        kind: Event kind the post is published as
    """

    model_config = ConfigDict(frozen=True)

    content: str
    references: tuple[ReferencedId, ...] = ()
    kind: PostKind = PostKind.TEXT
