import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .context import context_from_request
from .exceptions import Conflict, Forbidden, NotFound, ValidationError
from .models import AuditLog, Tenant, User
from .permissions import TENANTS_MANAGE, USERS_MANAGE, capabilities_for, capability_required
from .serializers import (
    AuditLogSerializer, TenantOwnerSerializer, TenantSerializer,
    UserCreateSerializer, UserRoleSerializer, UserSerializer,
)
from .utils import create_audit_log, paginated_response

logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if self.user.tenant is not None and not self.user.tenant.is_active:
            raise AuthenticationFailed('Tenant account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        token['tenant_id'] = user.tenant_id
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that answers 401 for users deleted since the token was issued"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with its role capabilities"""
    user = request.user
    data = UserSerializer(user).data
    data['capabilities'] = sorted(capabilities_for(user.role))
    return Response(data)


def _manageable_users(ctx):
    """Users the acting account may administer"""
    queryset = User.objects.select_related('tenant')
    if ctx.role == User.ROLE_SUPERADMIN:
        return queryset
    return queryset.filter(tenant=ctx.require_tenant())


def _get_manageable_user(ctx, pk):
    try:
        return _manageable_users(ctx).get(pk=pk)
    except User.DoesNotExist:
        raise NotFound('User not found.')


def _check_assignable_role(ctx, role):
    if role == User.ROLE_SUPERADMIN and ctx.role != User.ROLE_SUPERADMIN:
        raise Forbidden('Only a super admin can grant the SUPERADMIN role.')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(USERS_MANAGE)])
def user_list_create(request):
    """List users of the tenant (all tenants for a super admin) or create one"""
    ctx = context_from_request(request, require_tenant=False)
    if request.method == 'GET':
        queryset = _manageable_users(ctx)
        tenant_filter = request.query_params.get('tenant')
        if tenant_filter:
            queryset = queryset.filter(tenant_id=tenant_filter)
        role_filter = request.query_params.get('role')
        if role_filter:
            queryset = queryset.filter(role=role_filter)
        return paginated_response(request, queryset.order_by('username'), UserSerializer)

    serializer = UserCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    role = serializer.validated_data['role']
    _check_assignable_role(ctx, role)

    if ctx.role == User.ROLE_SUPERADMIN:
        tenant = None
        if role != User.ROLE_SUPERADMIN:
            tenant_id = request.data.get('tenant')
            if not tenant_id:
                raise ValidationError('tenant is required for tenant users.')
            try:
                tenant = Tenant.objects.get(pk=tenant_id)
            except (Tenant.DoesNotExist, ValueError, TypeError):
                raise NotFound('Tenant not found.')
    else:
        tenant = ctx.require_tenant()

    user = serializer.save(tenant=tenant)
    create_audit_log(ctx, action='create', model_name='User', object_id=user.pk,
                     object_reference=user.username, changes={'role': user.role})
    logger.info("User %s created with role %s", user.username, user.role)
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(USERS_MANAGE)])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    ctx = context_from_request(request, require_tenant=False)
    user = _get_manageable_user(ctx, pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        if user.pk == ctx.user.pk and serializer.validated_data.get('is_active') is False:
            raise Conflict('You cannot deactivate your own account.')
        serializer.save()
        create_audit_log(ctx, action='update', model_name='User', object_id=user.pk,
                         object_reference=user.username, changes=request.data)
        return Response(serializer.data)
    else:  # DELETE
        if user.pk == ctx.user.pk:
            raise Conflict('You cannot delete your own account.')
        create_audit_log(ctx, action='delete', model_name='User', object_id=user.pk,
                         object_reference=user.username)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, capability_required(USERS_MANAGE)])
def user_role(request, pk):
    """Change a user's role"""
    ctx = context_from_request(request, require_tenant=False)
    user = _get_manageable_user(ctx, pk)
    serializer = UserRoleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    role = serializer.validated_data['role']
    _check_assignable_role(ctx, role)

    if user.pk == ctx.user.pk and role != user.role:
        raise Conflict('You cannot change your own role.')
    if user.tenant_id is not None and role == User.ROLE_SUPERADMIN:
        raise ValidationError('Tenant users cannot be super admins.')

    old_role = user.role
    user.role = role
    user.save(update_fields=['role', 'updated_at'])
    create_audit_log(ctx, action='role_change', model_name='User', object_id=user.pk,
                     object_reference=user.username, changes={'role': {'old': old_role, 'new': role}})
    logger.info("Role of %s changed from %s to %s", user.username, old_role, role)
    return Response(UserSerializer(user).data)


# Tenant views (super admin panel)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(TENANTS_MANAGE)])
def tenant_list_create(request):
    """List tenants or create one, optionally with its first owner"""
    ctx = context_from_request(request, require_tenant=False)
    if request.method == 'GET':
        queryset = Tenant.objects.annotate(user_count=Count('users')).order_by('company_name')
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(company_name__icontains=search)
        return paginated_response(request, queryset, TenantSerializer)

    serializer = TenantSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    owner_serializer = None
    if request.data.get('owner'):
        owner_serializer = TenantOwnerSerializer(data=request.data['owner'])
        owner_serializer.is_valid(raise_exception=True)

    with transaction.atomic():
        tenant = serializer.save()
        if owner_serializer is not None:
            owner_data = dict(owner_serializer.validated_data)
            password = owner_data.pop('password')
            owner = User(tenant=tenant, role=User.ROLE_OWNER, is_active=True, **owner_data)
            owner.set_password(password)
            owner.save()
        create_audit_log(ctx, action='create', model_name='Tenant', object_id=tenant.pk,
                         object_reference=tenant.company_name)

    logger.info("Tenant %s created", tenant.company_name)
    data = TenantSerializer(tenant).data
    data['user_count'] = tenant.users.count()
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, capability_required(TENANTS_MANAGE)])
def tenant_detail(request, pk):
    """Tenant with its users and record counts"""
    ctx = context_from_request(request, require_tenant=False)
    try:
        tenant = Tenant.objects.get(pk=pk)
    except Tenant.DoesNotExist:
        raise NotFound('Tenant not found.')

    if request.method == 'PATCH':
        serializer = TenantSerializer(tenant, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        create_audit_log(ctx, action='update', model_name='Tenant', object_id=tenant.pk,
                         object_reference=tenant.company_name, changes=request.data)

    data = TenantSerializer(tenant).data
    users = tenant.users.order_by('username')
    data['user_count'] = users.count()
    data['users'] = UserSerializer(users, many=True).data
    data['record_counts'] = {
        'green_lots': tenant.green_lots.count(),
        'roast_batches': tenant.roast_batches.count(),
        'purchase_orders': tenant.purchase_orders.count(),
        'sales_orders': tenant.sales_orders.count(),
        'suppliers': tenant.suppliers.count(),
        'clients': tenant.clients.count(),
    }
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(USERS_MANAGE)])
def audit_log_list(request):
    """List audit logs of the tenant with filtering"""
    ctx = context_from_request(request, require_tenant=False)
    queryset = AuditLog.objects.select_related('user')
    if ctx.role != User.ROLE_SUPERADMIN:
        queryset = queryset.filter(tenant=ctx.require_tenant())

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)
    model_filter = request.query_params.get('model')
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    return paginated_response(request, queryset.order_by('-created_at'), AuditLogSerializer, default_limit=50)
