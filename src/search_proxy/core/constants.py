"""Shared constants for the search proxy.

Provides centralized values for:
- Default timeout values
- Funnelback collections and tab facets
- Edge geolocation headers
- API paths
"""


# =============================================================================
# Default Timeout Values
# =============================================================================

class Timeouts:
    """Default timeout values in seconds.

    These can be overridden via Settings.
    """
    BACKEND: float = 10.0
    CACHE: float = 0.5
    ANALYTICS_WRITE: float = 2.0
    GEO_LOOKUP: float = 1.5


# =============================================================================
# Funnelback
# =============================================================================

COLLECTION_SITE = "seattleu~sp-search"
COLLECTION_PROGRAMS = "seattleu~ds-programs"
COLLECTION_STAFF = "seattleu~ds-staff"

DEFAULT_PROFILE = "_default"

# Facet parameters sent by the tabbed search UI
TAB_PARAM_PROGRAMS = "f.Tabs|programMain"
TAB_PARAM_STAFF = "f.Tabs|seattleu~ds-staff"

TAB_LABEL_PROGRAMS = "program-main"
TAB_LABEL_STAFF = "Faculty & Staff"


# =============================================================================
# Edge Geolocation Headers (Vercel)
# =============================================================================

HEADER_GEO_CITY = "x-vercel-ip-city"
HEADER_GEO_REGION = "x-vercel-ip-country-region"
HEADER_GEO_COUNTRY = "x-vercel-ip-country"
HEADER_GEO_TIMEZONE = "x-vercel-ip-timezone"
HEADER_GEO_LATITUDE = "x-vercel-ip-latitude"
HEADER_GEO_LONGITUDE = "x-vercel-ip-longitude"

HEADER_FORWARDED_FOR = "x-forwarded-for"
HEADER_REAL_IP = "x-real-ip"


# =============================================================================
# Response Headers
# =============================================================================

HEADER_SESSION_ID = "X-Session-Id"
HEADER_CACHE_STATUS = "X-Cache"
HEADER_ADMIN_TOKEN = "X-Admin-Token"


# =============================================================================
# API Paths
# =============================================================================

PROXY_PREFIX = "/proxy"
ADMIN_PREFIX = "/admin"
HEALTH_CHECK_PATH = "/health"
