"""Generation job status."""

from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from statements.models import GenerationJob

from .mixins import JsonApiView


class GenerationJobView(JsonApiView):
    """GET /api/jobs/<id>/"""

    def get(self, request, *args, **kwargs):
        job = get_object_or_404(GenerationJob, pk=kwargs.get('job_id'))
        data = job.as_dict()
        data['duration_seconds'] = job.duration_seconds
        return JsonResponse({'success': True, 'job': data})
