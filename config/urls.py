"""
URL configuration for the santa-tour project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.0/topics/http/urls/
"""

from django.contrib import admin
from django.http import HttpRequest, JsonResponse
from django.urls import include, path
from django.urls.resolvers import URLPattern, URLResolver


def health(request: HttpRequest) -> JsonResponse:
    """Health check endpoint."""
    return JsonResponse({'status': 'ok'})


urlpatterns: list[URLPattern | URLResolver] = [
    path('health/', health, name='health'),
    path('admin/', admin.site.urls),
    path('api/', include('santa_tour.urls')),
]
