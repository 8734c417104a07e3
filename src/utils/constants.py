"""Shared constants for URL validation and content classification."""

# SSRF protection: allowed URL schemes for outbound requests
ALLOWED_URL_SCHEMES = frozenset({'http', 'https'})

# Preferred extensions where the platform mimetypes table picks an odd one
# (image/jpeg -> .jpe on some systems) or has no entry at all.
PREFERRED_EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/pjpeg': 'jpg',
    'image/svg+xml': 'svg',
    'image/x-icon': 'ico',
    'image/vnd.microsoft.icon': 'ico',
    'image/webp': 'webp',
    'audio/mpeg': 'mp3',
    'video/webm': 'webm',
    'text/plain': 'txt',
}
