# -*- coding: utf-8 -*-
"""Application constants."""

APP_NAME = "screenshot-studio"
APP_VERSION = "0.1.0"

DEFAULT_SETTINGS_FILE = "settings.json"
DEFAULT_DB_FILE = "screenstudio.sqlite3"

SCHEMA_VERSION = 2

SAVE_DEBOUNCE_MS = 1000
MAX_HISTORY = 50

DEFAULT_LANGUAGE = "en"
DEFAULT_PROJECT_ID = "default"
DEFAULT_PROJECT_NAME = "Default Project"

META_PROJECTS_KEY = "projects"
META_CURRENT_PROJECT_KEY = "currentProject"

VALID_IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp")
IMAGE_EXTENSION_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}
MAX_FILE_SIZE = 20 * 1024 * 1024

OUTPUT_DEVICES = {
    "iphone-6.9": {"width": 1320, "height": 2868},
    "iphone-6.7": {"width": 1290, "height": 2796},
    "iphone-6.5": {"width": 1284, "height": 2778},
    "ipad-12.9": {"width": 2048, "height": 2732},
    "android-phone": {"width": 1080, "height": 1920},
}
DEFAULT_OUTPUT_DEVICE = "iphone-6.9"
CUSTOM_OUTPUT_DEVICE = "custom"

# height / width below this is treated as a tablet
TABLET_ASPECT_THRESHOLD = 1.5

LANGUAGE_NAMES = {
    "en": "English",
    "en-gb": "English (UK)",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "pt-br": "Portuguese (Brazil)",
    "nl": "Dutch",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese (Simplified)",
    "zh-tw": "Chinese (Traditional)",
    "ar": "Arabic",
    "hi": "Hindi",
    "tr": "Turkish",
    "pl": "Polish",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "uk": "Ukrainian",
}

LANGUAGE_FLAGS = {
    "en": "\U0001F1FA\U0001F1F8",
    "en-gb": "\U0001F1EC\U0001F1E7",
    "de": "\U0001F1E9\U0001F1EA",
    "fr": "\U0001F1EB\U0001F1F7",
    "es": "\U0001F1EA\U0001F1F8",
    "it": "\U0001F1EE\U0001F1F9",
    "pt": "\U0001F1F5\U0001F1F9",
    "pt-br": "\U0001F1E7\U0001F1F7",
    "nl": "\U0001F1F3\U0001F1F1",
    "ru": "\U0001F1F7\U0001F1FA",
    "ja": "\U0001F1EF\U0001F1F5",
    "ko": "\U0001F1F0\U0001F1F7",
    "zh": "\U0001F1E8\U0001F1F3",
    "zh-tw": "\U0001F1F9\U0001F1FC",
    "ar": "\U0001F1F8\U0001F1E6",
    "hi": "\U0001F1EE\U0001F1F3",
    "tr": "\U0001F1F9\U0001F1F7",
    "pl": "\U0001F1F5\U0001F1F1",
    "sv": "\U0001F1F8\U0001F1EA",
    "da": "\U0001F1E9\U0001F1F0",
    "no": "\U0001F1F3\U0001F1F4",
    "fi": "\U0001F1EB\U0001F1EE",
    "th": "\U0001F1F9\U0001F1ED",
    "vi": "\U0001F1FB\U0001F1F3",
    "id": "\U0001F1EE\U0001F1E9",
    "uk": "\U0001F1FA\U0001F1E6",
}
