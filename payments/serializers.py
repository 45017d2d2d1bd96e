from rest_framework import serializers
import datetime

from plans.models import PlanType
from members.models import Member
from .models import Payment, PaymentMethod


class DateFromDateTimeField(serializers.DateField):
    """Custom field that handles both date and datetime inputs"""
    def to_internal_value(self, value):
        if isinstance(value, datetime.datetime):
            value = value.date()
        elif isinstance(value, str) and 'T' in value:
            # Handle ISO datetime string
            value = value.split('T')[0]
        return super().to_internal_value(value)


class RecordPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    plan_type = serializers.ChoiceField(choices=PlanType.choices)
    duration = serializers.IntegerField(min_value=1, help_text="Months")
    membership_start_date = DateFromDateTimeField()
    membership_end_date = DateFromDateTimeField()
    payment_method = serializers.CharField(required=False, allow_blank=True, default='')
    transaction_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    plan_id = serializers.UUIDField(required=False, allow_null=True)

    def to_internal_value(self, data):
        # Handle array inputs (common with FormData)
        data = data.copy() if hasattr(data, 'copy') else dict(data)
        for key in ['plan_id', 'amount', 'duration']:
            value = data.get(key)
            if isinstance(value, list):
                data[key] = value[0]
        return super().to_internal_value(data)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def validate_payment_method(self, value):
        # Anything that is not explicitly cash was collected online
        if value and value.strip().lower() == 'cash':
            return PaymentMethod.CASH.value
        return PaymentMethod.ONLINE.value

    def validate(self, attrs):
        if attrs['membership_end_date'] < attrs['membership_start_date']:
            raise serializers.ValidationError({
                'membership_end_date': "End date cannot be before the start date."
            })
        if not attrs.get('transaction_id'):
            attrs['transaction_id'] = None
        return attrs


class ManualReceiptSerializer(serializers.Serializer):
    """A receipt the gym owner fills in by hand, for money taken outside the normal flow."""
    member_id = serializers.IntegerField(required=False, allow_null=True)
    member_name = serializers.CharField(max_length=100)
    member_email = serializers.EmailField()
    member_phone = serializers.CharField(required=False, allow_blank=True, default='')
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    plan_type = serializers.ChoiceField(choices=PlanType.choices)
    duration = serializers.IntegerField(min_value=1, help_text="Months")
    period_start = DateFromDateTimeField()
    period_end = DateFromDateTimeField()
    payment_method = serializers.CharField(required=False, allow_blank=True, default='Cash')
    transaction_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    trainer_name = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def validate_payment_method(self, value):
        if not value or value.strip().lower() == 'cash':
            return PaymentMethod.CASH.value
        return PaymentMethod.ONLINE.value

    def validate(self, attrs):
        if attrs['period_end'] < attrs['period_start']:
            raise serializers.ValidationError({
                'period_end': "End date cannot be before the start date."
            })
        if not attrs.get('transaction_id'):
            attrs['transaction_id'] = None
        return attrs


class ReceiptMemberSerializer(serializers.ModelSerializer):
    """Just enough of a member to prefill the manual receipt form"""
    assigned_trainer_name = serializers.SerializerMethodField()

    class Meta:
        model = Member
        fields = ['id', 'full_name', 'email', 'phone_number', 'assigned_trainer_name']

    def get_assigned_trainer_name(self, obj):
        return obj.assigned_trainer.name if obj.assigned_trainer_id else None


class PaymentSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source='member_display_name', read_only=True)
    membership_period = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            'id', 'member', 'member_name', 'gym_owner', 'plan',
            'member_snapshot', 'gym_snapshot',
            'amount', 'plan_cost', 'trainer_cost', 'adjustment',
            'plan_type', 'duration', 'payment_method', 'payment_status',
            'transaction_id', 'notes', 'membership_period',
            'payment_date', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_membership_period(self, obj):
        return {
            'start_date': obj.period_start.isoformat() if obj.period_start else None,
            'end_date': obj.period_end.isoformat() if obj.period_end else None,
        }


class PaymentListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for payment history; falls back to the snapshot once a member is gone"""
    member_id = serializers.SerializerMethodField()
    member_name = serializers.CharField(source='member_display_name', read_only=True)
    member_email = serializers.SerializerMethodField()
    member_phone = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            'id', 'member_id', 'member_name', 'member_email', 'member_phone',
            'payment_date', 'amount', 'plan_type', 'duration',
            'payment_method', 'payment_status', 'transaction_id', 'notes',
        ]

    def get_member_id(self, obj):
        if obj.member_id is not None:
            return obj.member_id
        return (obj.member_snapshot or {}).get('id')

    def get_member_email(self, obj):
        if obj.member is not None and obj.member.email:
            return obj.member.email
        return (obj.member_snapshot or {}).get('email')

    def get_member_phone(self, obj):
        if obj.member is not None and obj.member.phone_number:
            return obj.member.phone_number
        return (obj.member_snapshot or {}).get('phone')
