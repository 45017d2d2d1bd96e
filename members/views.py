from collections import Counter

from django.db import models
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from management.permissions import IsGymOwner
from .models import Member, MemberAgreement, MembershipStatus
from .serializers import MemberSerializer, MemberOnboardingSerializer, MemberAgreementSerializer
from .status import derive_status


class MemberViewSet(viewsets.ModelViewSet):
    """
    Members of the authenticated gym owner. ``membership_status`` in every
    payload is derived at read time; listing never writes to the database.
    """
    serializer_class = MemberSerializer
    permission_classes = [IsAuthenticated, IsGymOwner]

    def get_serializer_class(self):
        if self.action == 'create':
            return MemberOnboardingSerializer
        return MemberSerializer

    def get_queryset(self):
        qs = Member.objects.filter(created_by=self.request.user).select_related(
            'plan', 'assigned_trainer__user'
        )

        # Search by member name, phone or email
        query = self.request.query_params.get('q')
        if query:
            qs = qs.filter(
                models.Q(full_name__icontains=query) |
                models.Q(phone_number__icontains=query) |
                models.Q(email__icontains=query)
            )

        trainer_id = self.request.query_params.get('trainer_id')
        if trainer_id:
            qs = qs.filter(assigned_trainer_id=trainer_id)

        return qs

    def list(self, request, *args, **kwargs):
        members = list(self.get_queryset())

        # Filter by derived status, which the database cannot do for us
        status_filter = request.query_params.get('status')
        if status_filter:
            wanted = status_filter.strip().lower()
            members = [m for m in members if derive_status(m).lower() == wanted]

        serializer = self.get_serializer(members, many=True)
        return Response(serializer.data)

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(detail=True, methods=['patch'], url_path='block')
    def block_member(self, request, pk=None):
        member = self.get_object()
        member.is_active = False
        member.membership_status = MembershipStatus.INACTIVE
        member.save(update_fields=['is_active', 'membership_status', 'updated_at'])
        return Response({'status': 'Member blocked successfully'}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['patch'], url_path='unblock')
    def unblock_member(self, request, pk=None):
        member = self.get_object()
        member.is_active = True
        member.membership_status = MembershipStatus.ACTIVE
        member.save(update_fields=['is_active', 'membership_status', 'updated_at'])
        return Response({'status': 'Member unblocked successfully'}, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'], url_path='membership-summary')
    def membership_summary(self, request):
        """
        Count members per derived membership status
        """
        counts = Counter(derive_status(m) for m in self.get_queryset())
        summary = {
            'active_members': counts[MembershipStatus.ACTIVE.value],
            'expired_members': counts[MembershipStatus.EXPIRED.value],
            'pending_members': counts[MembershipStatus.PENDING.value],
            'inactive_members': counts[MembershipStatus.INACTIVE.value],
            'total_members': sum(counts.values()),
        }
        return Response(summary)

    @action(detail=False, methods=['get'])
    def agreements(self, request):
        agreements = MemberAgreement.objects.filter(gym_owner=request.user).select_related(
            'member', 'assigned_trainer__user'
        )
        return Response({'agreements': MemberAgreementSerializer(agreements, many=True).data})
