from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from infrastructure.container import container
from storefront.api.serializers import (
    AdminCouponListQuerySerializer,
    AdminCouponListResponseSerializer,
    AdminUserCouponSerializer,
    ErrorResponseSerializer,
    UserCouponUpdateSerializer,
)
from storefront.api.views.errors import error_response
from storefront.audit.logger import AuditContext
from storefront.permissions import IsAdminRole
from storefront.promotions.domain.services import CouponService

RESOURCE_TYPE = "USER_COUPON"


class UserCouponAdminViewSet(viewsets.ViewSet):
    """
    Admin view of issued coupons across all users.
    """

    permission_classes = [IsAdminRole]

    def get_service(self) -> CouponService:
        return container.coupon_service()

    @extend_schema(
        operation_id="user_coupons_list",
        summary="List issued coupons",
        parameters=[
            OpenApiParameter(name="user_id", type=str, description="Coupon owner"),
            OpenApiParameter(name="campaign_id", type=int, description="Issuing campaign"),
            OpenApiParameter(name="coupon_code", type=str, description="Case-insensitive substring of the code"),
            OpenApiParameter(name="is_redeemed", type=bool),
            OpenApiParameter(name="is_active", type=bool),
            OpenApiParameter(name="sort_by", type=str, description="Sort field"),
            OpenApiParameter(name="sort_order", type=str, enum=["asc", "desc"]),
            OpenApiParameter(name="page", type=int, description="Page number"),
            OpenApiParameter(name="limit", type=int, description="Items per page"),
        ],
        responses={
            200: OpenApiResponse(response=AdminCouponListResponseSerializer, description="Issued coupons"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid query parameters"),
        },
        tags=["Storefront - User Coupons"],
    )
    def list(self, request):
        query = AdminCouponListQuerySerializer(data=request.query_params.dict())
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        result = self.get_service().list_coupons(query.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(
            {
                "results": AdminUserCouponSerializer(result.value["results"], many=True).data,
                "pagination": result.value["pagination"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="user_coupons_partial_update",
        summary="Update an issued coupon",
        description="""
        Only `is_active` and `expires_at` can change. The owner, campaign and
        code are fixed once issued.
        """,
        request=UserCouponUpdateSerializer,
        responses={
            200: OpenApiResponse(response=AdminUserCouponSerializer, description="Coupon updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Coupon not found"),
        },
        tags=["Storefront - User Coupons"],
    )
    def partial_update(self, request, pk=None):
        input_serializer = UserCouponUpdateSerializer(data=request.data, partial=True)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        result = self.get_service().update_user_coupon(pk, input_serializer.validated_data)
        if not result.ok:
            audit_logger.log_failed_action(context, "user_coupon_updated", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        user_coupon = result.value["user_coupon"]
        audit_logger.log_resource_update(
            context, RESOURCE_TYPE, user_coupon.pk, result.value["old_values"], result.value["new_values"]
        )
        return Response(AdminUserCouponSerializer(user_coupon).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="user_coupons_deactivate",
        summary="Deactivate an issued coupon",
        responses={
            200: OpenApiResponse(response=AdminUserCouponSerializer, description="Coupon deactivated"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Coupon not found"),
        },
        tags=["Storefront - User Coupons"],
    )
    def destroy(self, request, pk=None):
        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        result = self.get_service().deactivate_user_coupon(pk)
        if not result.ok:
            audit_logger.log_failed_action(context, "user_coupon_deleted", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        user_coupon = result.value
        audit_logger.log_resource_deletion(
            context,
            RESOURCE_TYPE,
            user_coupon.pk,
            {"coupon_code": user_coupon.coupon_code, "user_id": str(user_coupon.user_id)},
        )
        return Response(AdminUserCouponSerializer(user_coupon).data, status=status.HTTP_200_OK)
