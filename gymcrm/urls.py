from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('management.urls')),
    path('api/', include('members.urls')),
    path('api/', include('plans.urls')),
    path('api/', include('payments.urls')),
]
