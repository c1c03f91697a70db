from .client import NewsWorkflowClient
from .errors import (
    NewsClientError,
    HTTPStatusError,
    TransportError,
    MalformedPayloadError,
    ConfigurationError,
)
from .loading import LoadingTicker, LOADING_MESSAGES
from .normalize import normalize_news, unwrap
from .render import render_text
from .settings import get_settings
from .state import Idle, Loading, Loaded, Errored, STATIC, DYNAMIC
