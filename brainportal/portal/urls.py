from django.urls import include, path

urlpatterns = [
    path('sites/', include('sites.urls')),
]
