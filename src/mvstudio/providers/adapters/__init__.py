"""Adapter registry: provider name to lazy-import class path."""

AVAILABLE_ADAPTERS: dict[str, str] = {
    # Music
    "suno": "mvstudio.providers.adapters.suno.SunoAdapter",
    "musicgpt": "mvstudio.providers.adapters.musicgpt.MusicGPTAdapter",
    # Video
    "kling": "mvstudio.providers.adapters.kling.KlingAdapter",
    "runway": "mvstudio.providers.adapters.runway.RunwayAdapter",
    # Publishing
    "youtube": "mvstudio.providers.adapters.youtube.YouTubeAdapter",
    "tiktok": "mvstudio.providers.adapters.tiktok.TikTokAdapter",
    "facebook": "mvstudio.providers.adapters.facebook.FacebookAdapter",
}


def import_adapter(dotted_path: str):
    """Import an adapter class from its dotted module path."""
    import importlib

    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
