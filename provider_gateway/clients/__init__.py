"""Provider clients."""
from .google_places import RestaurantClient  # noqa: F401
from .http import HttpClient, HttpResponse  # noqa: F401
from .tmdb import MovieClient  # noqa: F401
