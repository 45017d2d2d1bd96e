from rest_framework import serializers
from .models import GymOwnerPlan


class GymOwnerPlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = GymOwnerPlan
        fields = [
            'id', 'name', 'price', 'billing_period', 'max_members', 'max_trainers',
            'description', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ('id', 'created_at', 'updated_at')

    def validate_name(self, value):
        owner = self.context['request'].user
        qs = GymOwnerPlan.objects.filter(gym_owner=owner, name__iexact=value.strip())
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("You already have a plan with this name.")
        return value.strip()
