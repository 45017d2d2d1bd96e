from rest_framework.routers import DefaultRouter
from .views import GymOwnerPlanViewSet

router = DefaultRouter()
router.register(r'plans', GymOwnerPlanViewSet, basename='plan')

urlpatterns = router.urls
