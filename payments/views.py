import logging

from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from management.permissions import IsGymOwner
from members.models import Member
from .backfill import backfill_payment_snapshots, backfill_payments_from_members
from .models import Payment
from .reports import PaymentFilter, get_stats, list_payments
from .serializers import PaymentListSerializer, PaymentSerializer, ReceiptMemberSerializer
from .services import record_payment, send_manual_receipt

logger = logging.getLogger(__name__)


class PaymentViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Payments received by the authenticated gym owner. Payments are only ever
    created here; there is no update or delete.
    """
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsGymOwner]

    def get_queryset(self):
        return Payment.objects.filter(gym_owner=self.request.user).select_related('member')

    def create(self, request, *args, **kwargs):
        payment = record_payment(request.user, request.data.get('member_id'), request.data)
        return Response({
            'message': 'Payment recorded successfully',
            'payment': PaymentSerializer(payment).data,
            'email_receipt': {'status': 'queued'},
        }, status=status.HTTP_201_CREATED)

    def list(self, request, *args, **kwargs):
        filters = PaymentFilter.from_params(request.query_params)
        payments = list_payments(request.user, filters)
        return Response({
            'payments': PaymentListSerializer(payments, many=True).data,
        })

    @action(detail=False, methods=['get'])
    def stats(self, request):
        filters = PaymentFilter.from_params(request.query_params)
        totals = get_stats(request.user, filters)
        return Response({
            'total_amount': float(totals['total_amount']),
            'total_payments': totals['total_payments'],
            'unique_members': totals['unique_members'],
            'cash': {
                'total': float(totals['cash_total']),
                'count': totals['cash_count'],
            },
            'online': {
                'total': float(totals['online_total']),
                'count': totals['online_count'],
            },
        })

    @action(detail=False, methods=['post'], url_path='send-manual-receipt')
    def manual_receipt(self, request):
        """Email a receipt typed in by the owner and log it against the matching member."""
        payment = send_manual_receipt(request.user, request.data)
        return Response({
            'message': f"Receipt successfully sent to {request.data.get('member_email')}.",
            'payment': PaymentSerializer(payment).data if payment is not None else None,
        })

    @action(detail=False, methods=['get'], url_path='members-for-receipt')
    def members_for_receipt(self, request):
        members = (
            Member.objects.filter(created_by=request.user)
            .select_related('assigned_trainer__user')
            .order_by('full_name')
        )
        return Response({
            'members': ReceiptMemberSerializer(members, many=True).data,
        })

    @action(detail=False, methods=['post'])
    def refresh(self, request):
        """Run both ledger repair passes and report what they did."""
        started_at = timezone.now()
        logger.info(f"Payment backfill requested by {request.user.email}")
        members_result = backfill_payments_from_members()
        snapshots_result = backfill_payment_snapshots()
        return Response({
            'message': 'Payments refreshed',
            'members': members_result.as_dict(),
            'snapshots': snapshots_result.as_dict(),
            'started_at': started_at,
            'finished_at': timezone.now(),
        })
