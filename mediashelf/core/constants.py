"""
Application-wide constants.

This module contains constants used throughout the application to avoid
magic numbers and strings scattered in the codebase.
"""

# Media Types
MEDIA_MOVIE = "movie"
MEDIA_TV = "tv"
MEDIA_SONG = "song"
MEDIA_ALBUM = "album"
MEDIA_BOOK = "book"
MEDIA_GAME = "game"

WATCHLIST_MEDIA_TYPES = (MEDIA_MOVIE, MEDIA_TV)
ALL_MEDIA_TYPES = (MEDIA_MOVIE, MEDIA_TV, MEDIA_SONG, MEDIA_ALBUM, MEDIA_BOOK, MEDIA_GAME)

# Library Domains
DOMAIN_BOOKS = "book"
DOMAIN_GAMES = "game"
DOMAIN_MUSIC = "music"
LIBRARY_DOMAINS = (DOMAIN_BOOKS, DOMAIN_GAMES, DOMAIN_MUSIC)

# Per-domain status vocabulary: (backlog, in progress, done)
LIBRARY_STATUSES = {
    DOMAIN_BOOKS: ("to-read", "reading", "read"),
    DOMAIN_GAMES: ("to-play", "playing", "played"),
    DOMAIN_MUSIC: ("to-listen", "listening", "saved"),
}

# Catalogue domains used by search, lists and import (plural, unlike library domains)
CATALOG_MOVIES_TV = "movies-tv"
CATALOG_BOOKS = "books"
CATALOG_GAMES = "games"
CATALOG_MUSIC = "music"
LIST_DOMAINS = (CATALOG_MOVIES_TV, CATALOG_BOOKS, CATALOG_GAMES, CATALOG_MUSIC)
CATALOG_FOR_LIBRARY_DOMAIN = {
    DOMAIN_BOOKS: CATALOG_BOOKS,
    DOMAIN_GAMES: CATALOG_GAMES,
    DOMAIN_MUSIC: CATALOG_MUSIC,
}

# Recommendation Statuses
REC_PENDING = "pending"
REC_CONSUMED = "consumed"
REC_HIT = "hit"
REC_MISS = "miss"
REC_STATUSES = (REC_PENDING, REC_CONSUMED, REC_HIT, REC_MISS)

REC_TYPES = ("watch", "rewatch", "read", "play", "listen")

DIRECTION_RECEIVED = "received"
DIRECTION_SENT = "sent"

# Roles
ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ADMIN_ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)

LIST_ROLE_OWNER = "owner"
LIST_ROLE_VIEWER = "viewer"
LIST_ROLE_EDITOR = "editor"
LIST_MEMBER_ROLES = (LIST_ROLE_VIEWER, LIST_ROLE_EDITOR)

# External API budgets (requests per second)
TMDB_REQUESTS_PER_SECOND = 4  # 40 requests / 10 seconds
OMDB_REQUESTS_PER_SECOND = 2
ITUNES_REQUESTS_PER_SECOND = 5
GOOGLE_BOOKS_REQUESTS_PER_SECOND = 1
RAWG_REQUESTS_PER_SECOND = 2

# Auth attempt limits: (max attempts, window seconds, block seconds)
SIGNIN_ATTEMPT_LIMIT = (5, 15 * 60, 15 * 60)
SIGNUP_ATTEMPT_LIMIT = (3, 60 * 60, 60 * 60)
INVITE_ATTEMPT_LIMIT = (10, 15 * 60, 15 * 60)
ATTEMPT_RECORD_MAX_AGE_SECONDS = 24 * 60 * 60

# Media Details Cache
MEDIA_DETAILS_TTL_DAYS = 180

# Client query cache
WATCHLIST_STALE_SECONDS = 5 * 60
LIBRARY_STALE_SECONDS = 5 * 60
TEMP_ID_PREFIX = "temp-"

# Input Limits
MAX_REVIEW_LENGTH = 5000
MAX_NOTES_LENGTH = 2000
MAX_SEARCH_QUERY_LENGTH = 200
MAX_LIST_TITLE_LENGTH = 120
MAX_MESSAGE_LENGTH = 500
MIN_RATING = 1
MAX_RATING = 5
MIN_PASSWORD_LENGTH = 8

# Invite Codes
INVITE_CODE_ALPHABET = "ABCDEFGHJKMNPQRTUVWXY23456789"  # no 0/O, 1/I/L, S, Z
INVITE_CODE_SEGMENTS = 4
INVITE_CODE_SEGMENT_LENGTH = 3
