from rest_framework import status, generics, permissions
from rest_framework.response import Response
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
import logging

from gymcrm.exceptions import NotFoundError
from .cascade import delete_gym_owner
from .models import User, Trainer
from .permissions import IsSuperAdmin
from .serializers import UserSerializer, TrainerSerializer, LoginSerializer, CascadeDeleteJobSerializer

logger = logging.getLogger(__name__)


def get_role_profile(user):
    """Extra payload shown next to the user after login, depending on role."""
    if user.role == User.TRAINER:
        try:
            return TrainerSerializer(Trainer.objects.get(user=user)).data
        except Trainer.DoesNotExist:
            return None
    if user.role == User.GYM_OWNER:
        from members.models import Member
        return {
            'gym_name': user.gym_name,
            'member_count': Member.objects.filter(created_by=user).count(),
            'trainer_count': Trainer.objects.filter(gym_owner=user).count(),
        }
    return None


class LoginView(generics.GenericAPIView):
    serializer_class = LoginSerializer
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']

        refresh = RefreshToken.for_user(user)

        return Response({
            'refresh': str(refresh),
            'access': str(refresh.access_token),
            'user': UserSerializer(user).data,
            'profile': get_role_profile(user)
        })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_user_profile(request):
    user = request.user
    return Response({
        'user': UserSerializer(user).data,
        'profile': get_role_profile(user)
    })


class GymOwnerDeleteView(APIView):
    """Delete a gym owner with all members, trainers, plans and payments."""
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def delete(self, request, pk):
        try:
            owner = User.objects.get(pk=pk, role=User.GYM_OWNER)
        except User.DoesNotExist:
            raise NotFoundError('Gym owner not found')

        logger.info(f"Super admin {request.user.email} deleting gym owner {owner.email}")
        job = delete_gym_owner(owner)
        return Response({
            'message': 'Gym owner and all associated data deleted successfully',
            'job': CascadeDeleteJobSerializer(job).data
        }, status=status.HTTP_200_OK)
