from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from management.permissions import IsGymOwner
from .models import GymOwnerPlan
from .serializers import GymOwnerPlanSerializer


class GymOwnerPlanViewSet(viewsets.ModelViewSet):
    serializer_class = GymOwnerPlanSerializer
    permission_classes = [IsAuthenticated, IsGymOwner]

    def get_queryset(self):
        return GymOwnerPlan.objects.filter(gym_owner=self.request.user)

    def perform_create(self, serializer):
        serializer.save(gym_owner=self.request.user)
