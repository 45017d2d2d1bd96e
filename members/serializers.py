from rest_framework import serializers

from gymcrm.dates import add_months
from management.models import Trainer
from plans.models import GymOwnerPlan
from .models import Member, MemberAgreement, MembershipStatus
from .status import derive_status, status_color


class MemberSerializer(serializers.ModelSerializer):
    # Derived on every read; the stored column is exposed separately as a hint.
    membership_status = serializers.SerializerMethodField(read_only=True)
    stored_membership_status = serializers.CharField(source='membership_status', read_only=True)
    status_color = serializers.SerializerMethodField(read_only=True)
    assigned_trainer_name = serializers.SerializerMethodField(read_only=True)
    plan = serializers.PrimaryKeyRelatedField(queryset=GymOwnerPlan.objects.all(), required=False, allow_null=True)
    assigned_trainer = serializers.PrimaryKeyRelatedField(queryset=Trainer.objects.all(), required=False, allow_null=True)

    class Meta:
        model = Member
        fields = [
            'id',
            'full_name',
            'email',
            'phone_number',

            # Membership
            'plan',
            'plan_type',
            'membership_type',
            'membership_start_date',
            'membership_end_date',
            'membership_duration',
            'membership_status',
            'stored_membership_status',
            'status_color',
            'payment_mode',
            'paid_amount',

            # Training
            'assigned_trainer',
            'assigned_trainer_name',

            # Timestamps
            'created_at',
            'updated_at',

            'is_active',
        ]
        read_only_fields = (
            'plan_type',
            'paid_amount',
            'created_at',
            'updated_at',
        )

    def get_membership_status(self, obj):
        return derive_status(obj)

    def get_status_color(self, obj):
        return status_color(derive_status(obj))

    def get_assigned_trainer_name(self, obj):
        return obj.assigned_trainer.name if obj.assigned_trainer else None

    def _owner(self):
        request = self.context.get('request')
        return request.user if request else None

    def validate_plan(self, value):
        if value is not None and value.gym_owner_id != getattr(self._owner(), 'pk', None):
            raise serializers.ValidationError("Plan not found")
        return value

    def validate_assigned_trainer(self, value):
        if value is not None and value.gym_owner_id != getattr(self._owner(), 'pk', None):
            raise serializers.ValidationError("Trainer not found")
        return value

    def validate_membership_duration(self, value):
        if value in (None, ''):
            return ''
        try:
            months = int(str(value).strip())
        except ValueError:
            raise serializers.ValidationError("Duration must be a whole number of months.")
        if months < 1:
            raise serializers.ValidationError("Duration must be at least one month.")
        return str(months)

    def validate(self, attrs):
        plan = attrs.get('plan')
        if plan is not None:
            attrs['plan_type'] = plan.name

        start = attrs.get('membership_start_date')
        duration = attrs.get('membership_duration')
        if start and duration and not attrs.get('membership_end_date'):
            attrs['membership_end_date'] = add_months(start, int(duration))
        return attrs


class MemberOnboardingSerializer(MemberSerializer):
    """Member creation payload: also records what the owner and member agreed to."""
    agreed_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, write_only=True, required=False, default=0)
    agreement_notes = serializers.CharField(write_only=True, required=False, allow_blank=True, default='')

    class Meta(MemberSerializer.Meta):
        fields = MemberSerializer.Meta.fields + ['agreed_amount', 'agreement_notes']

    def create(self, validated_data):
        agreed_amount = validated_data.pop('agreed_amount', 0)
        notes = validated_data.pop('agreement_notes', '')
        validated_data['paid_amount'] = agreed_amount
        if agreed_amount and validated_data.get('membership_start_date'):
            validated_data['membership_status'] = MembershipStatus.ACTIVE
        member = super().create(validated_data)

        from .snapshots import get_agreement_snapshot
        MemberAgreement.objects.create(
            member=member,
            gym_owner=member.created_by,
            payment_method='cash' if 'cash' in (member.payment_mode or '').lower() else 'online',
            paid_amount=agreed_amount,
            plan=member.plan,
            plan_type=member.plan_type,
            duration_months=int(member.membership_duration) if member.membership_duration else None,
            membership_start_date=member.membership_start_date,
            membership_end_date=member.membership_end_date,
            assigned_trainer=member.assigned_trainer,
            notes=notes,
            member_snapshot=get_agreement_snapshot(member),
        )
        return member


class MemberAgreementSerializer(serializers.ModelSerializer):
    member_name = serializers.SerializerMethodField()
    member_email = serializers.SerializerMethodField()
    member_phone = serializers.SerializerMethodField()
    assigned_trainer_name = serializers.SerializerMethodField()

    class Meta:
        model = MemberAgreement
        fields = [
            'id', 'member', 'member_name', 'member_email', 'member_phone',
            'payment_method', 'paid_amount', 'plan', 'plan_type', 'duration_months',
            'membership_start_date', 'membership_end_date', 'assigned_trainer_name',
            'notes', 'created_at'
        ]

    def _live_or_snapshot(self, obj, live_attr, snapshot_key, fallback=''):
        if obj.member is not None and getattr(obj.member, live_attr):
            return getattr(obj.member, live_attr)
        return (obj.member_snapshot or {}).get(snapshot_key) or fallback

    def get_member_name(self, obj):
        return self._live_or_snapshot(obj, 'full_name', 'name', 'Unknown')

    def get_member_email(self, obj):
        return self._live_or_snapshot(obj, 'email', 'email')

    def get_member_phone(self, obj):
        return self._live_or_snapshot(obj, 'phone_number', 'phone')

    def get_assigned_trainer_name(self, obj):
        return obj.assigned_trainer.name if obj.assigned_trainer else None
