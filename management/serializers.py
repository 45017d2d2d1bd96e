from rest_framework import serializers
from django.contrib.auth import authenticate
from .models import User, Trainer, CascadeDeleteJob


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role', 'gym_name', 'is_active', 'created_at']
        read_only_fields = ['id', 'created_at']


class TrainerSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    fee_configured = serializers.SerializerMethodField()

    class Meta:
        model = Trainer
        fields = ['id', 'user', 'gym_owner', 'specialization', 'monthly_fee', 'fee_configured', 'is_active', 'created_at']

    def get_fee_configured(self, obj):
        return bool(obj.monthly_fee)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate(self, data):
        email = data.get('email')
        password = data.get('password')

        if email and password:
            user = authenticate(username=email, password=password)
            if user:
                if user.is_active:
                    data['user'] = user
                else:
                    raise serializers.ValidationError("User account is disabled.")
            else:
                raise serializers.ValidationError("Invalid email or password.")
        else:
            raise serializers.ValidationError("Must include email and password.")

        return data


class CascadeDeleteJobSerializer(serializers.ModelSerializer):
    class Meta:
        model = CascadeDeleteJob
        fields = ['id', 'gym_owner_id', 'gym_owner_email', 'status', 'used_transaction',
                  'completed_steps', 'deleted_counts', 'last_error', 'created_at', 'updated_at']
