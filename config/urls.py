"""URL configuration for the chalet reservation service.

The `urlpatterns` list routes URLs to views. It includes the Django admin
and the reservation API router.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/reservations/', include('apps.reservations.urls')),
]
