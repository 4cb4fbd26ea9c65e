"""
URL configuration package.

Combines statement and job URL patterns into a single urlpatterns list.
The app_name stays 'statements' for namespace.
"""

from .statements import urlpatterns as statement_urls
from .jobs import urlpatterns as job_urls

app_name = 'statements'

urlpatterns = (
    statement_urls
    + job_urls
)
