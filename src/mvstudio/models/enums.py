"""String enums shared by the API, the store and the provider layer."""

from enum import StrEnum


class JobDomain(StrEnum):
    MUSIC = "music"
    VIDEO = "video"
    PUBLICATION = "publication"


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
NON_TERMINAL_STATUSES = frozenset({JobStatus.PENDING, JobStatus.PROCESSING})


class MusicProvider(StrEnum):
    SUNO = "suno"
    MUSICGPT = "musicgpt"


class VideoProvider(StrEnum):
    KLING = "kling"
    RUNWAY = "runway"


class PublishPlatform(StrEnum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    FACEBOOK = "facebook"


class ProjectStatus(StrEnum):
    DRAFT = "draft"
    MUSIC_GENERATION = "music_generation"
    VIDEO_GENERATION = "video_generation"
    EDITING = "editing"
    COMPLETED = "completed"
    PUBLISHED = "published"


class PrivacyStatus(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"
    UNLISTED = "unlisted"
