"""
URL configuration for Owner Statements project.
"""

from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Owner Statements Admin"
admin.site.site_title = "Admin Portal"
admin.site.index_title = "Listings & Statements"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('statements.urls')),
]
