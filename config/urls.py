from django.urls import include, path

urlpatterns = [
    path('', include('bloodlink.urls')),
]
