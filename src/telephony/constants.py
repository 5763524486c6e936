"""Static values shared by TwiML option schemas."""

from __future__ import annotations

# Timeout used for <Gather> (user input), forwarded calls, etc.
DEFAULT_TIMEOUT = 5

# HTTP methods Twilio can use to request webhooks.
TWILIO_HTTP_METHODS = ("GET", "POST")

# Status Twilio reports once a call has ended.
COMPLETED_CALL_STATUS = "completed"

# Speech recognition languages accepted by <Gather language="...">.
LANGUAGE_TAGS = (
    "af-ZA", "am-ET", "hy-AM", "az-AZ", "id-ID", "ms-MY", "bn-BD", "bn-IN",
    "ca-ES", "cs-CZ", "da-DK", "de-DE", "en-AU", "en-CA", "en-GH", "en-GB",
    "en-IN", "en-IE", "en-KE", "en-NZ", "en-NG", "en-PH", "en-ZA", "en-TZ",
    "en-US", "es-AR", "es-BO", "es-CL", "es-CO", "es-CR", "es-EC", "es-SV",
    "es-ES", "es-US", "es-GT", "es-HN", "es-MX", "es-NI", "es-PA", "es-PY",
    "es-PE", "es-PR", "es-DO", "es-UY", "es-VE", "eu-ES", "il-PH", "fr-CA",
    "fr-FR", "gl-ES", "ka-GE", "gu-IN", "hr-HR", "zu-ZA", "is-IS", "it-IT",
    "jv-ID", "kn-IN", "km-KH", "lo-LA", "lv-LV", "lt-LT", "hu-HU", "ml-IN",
    "mr-IN", "nl-NL", "ne-NP", "nb-NO", "pl-PL", "pt-BR", "pt-PT", "ro-RO",
    "si-LK", "sk-SK", "sl-SI", "su-ID", "sw-TZ", "sw-KE", "fi-FI", "sv-SE",
    "ta-IN", "ta-SG", "ta-LK", "ta-MY", "te-IN", "vi-VN", "tr-TR", "ur-PK",
    "ur-IN", "el-GR", "bg-BG", "ru-RU", "sr-RS", "uk-UA", "he-IL", "ar-IL",
    "ar-JO", "ar-AE", "ar-BH", "ar-DZ", "ar-SA", "ar-IQ", "ar-KW", "ar-MA",
    "ar-TN", "ar-OM", "ar-PS", "ar-QA", "ar-LB", "ar-EG", "fa-IR", "hi-IN",
    "th-TH", "ko-KR", "cmn-Hant-TW", "yue-Hant-HK", "ja-JP", "cmn-Hans-HK",
    "cmn-Hans-CN",
)

# Country ring tones accepted by <Dial ringTone="...">.
RING_TONES = (
    "at", "au", "bg", "br", "be", "ch", "cl", "cn", "cz", "de", "dk", "ee",
    "es", "fi", "fr", "gr", "hu", "il", "in", "it", "lt", "jp", "mx", "my",
    "nl", "no", "nz", "ph", "pl", "pt", "ru", "se", "sg", "th", "uk", "us",
    "us-old", "tw", "ve", "za",
)
