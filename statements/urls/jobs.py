"""Generation job URL patterns."""

from django.urls import path
from statements.views import GenerationJobView

urlpatterns = [
    path('jobs/<int:job_id>/', GenerationJobView.as_view(), name='generation_job'),
]
