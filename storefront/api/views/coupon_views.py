from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from storefront.api.serializers import (
    ApplyCouponRequestSerializer,
    ApplyCouponResponseSerializer,
    CouponListQuerySerializer,
    CouponListResponseSerializer,
    CouponRejectionResponseSerializer,
    ErrorResponseSerializer,
    RedeemCouponRequestSerializer,
    RedeemCouponResponseSerializer,
    UserCouponSerializer,
)
from storefront.api.views.errors import error_response, rejection_response
from storefront.audit.logger import AuditContext
from storefront.permissions import IsAdminRole
from storefront.promotions.domain.services import CartSnapshot, CouponService

RESOURCE_TYPE = "USER_COUPON"


class CouponViewSet(viewsets.ViewSet):
    """
    A user's coupons: listing, lookup, cart evaluation and redemption.
    """

    permission_classes = [IsAuthenticated]
    lookup_field = "code"
    lookup_value_regex = r"[A-Za-z0-9\-]+"

    def get_permissions(self):
        if self.action == "redeem":
            return [IsAdminRole()]
        return super().get_permissions()

    def get_service(self) -> CouponService:
        return container.coupon_service()

    @extend_schema(
        operation_id="coupons_list",
        summary="List my coupons",
        parameters=[
            OpenApiParameter(name="status", type=str, enum=["active", "expired", "redeemed", "all"]),
            OpenApiParameter(name="page", type=int, description="Page number"),
            OpenApiParameter(name="limit", type=int, description="Items per page"),
        ],
        responses={
            200: OpenApiResponse(response=CouponListResponseSerializer, description="Coupons of the current user"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid query parameters"),
        },
        tags=["Storefront - Coupons"],
    )
    def list(self, request):
        query = CouponListQuerySerializer(data=request.query_params.dict())
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        params = query.validated_data

        result = self.get_service().get_user_coupons(
            request.user, status=params["status"], page=params["page"], limit=params["limit"]
        )
        if not result.ok:
            return error_response(result)

        return Response(
            {
                "results": UserCouponSerializer(result.value["results"], many=True).data,
                "pagination": result.value["pagination"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="coupons_retrieve",
        summary="Get one of my coupons by code",
        responses={
            200: OpenApiResponse(response=UserCouponSerializer, description="Coupon"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Coupon not found"),
        },
        tags=["Storefront - Coupons"],
    )
    def retrieve(self, request, code=None):
        result = self.get_service().get_coupon_by_code(request.user, code)
        if not result.ok:
            return error_response(result)
        return Response(UserCouponSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="coupons_apply",
        summary="Check a coupon against a cart",
        description="""
        **What it receives:**
        - `coupon_code`: one of the current user's coupons
        - `cart_total_amount`: cart total
        - `items`: cart lines (`product_variant_id`, `category_id`, `quantity`, `price`)

        **What it returns:**
        - The discount the coupon grants. Nothing is redeemed.

        Rejections carry the rejection code in `error`: `NOT_FOUND` (404),
        `NOT_ELIGIBLE` (403), `NOT_USABLE`, `BELOW_MINIMUM` or `NOT_APPLICABLE` (400).
        """,
        request=ApplyCouponRequestSerializer,
        responses={
            200: OpenApiResponse(response=ApplyCouponResponseSerializer, description="Coupon applies"),
            400: OpenApiResponse(response=CouponRejectionResponseSerializer, description="Coupon rejected"),
            403: OpenApiResponse(response=CouponRejectionResponseSerializer, description="User not eligible"),
            404: OpenApiResponse(response=CouponRejectionResponseSerializer, description="Coupon not found"),
        },
        tags=["Storefront - Coupons"],
    )
    @action(detail=False, methods=["post"])
    def apply(self, request):
        input_serializer = ApplyCouponRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = input_serializer.validated_data

        cart = CartSnapshot.from_payload(data["cart_total_amount"], data["items"])
        evaluation = container.coupon_evaluator().can_apply(data["coupon_code"], request.user.id, cart)
        if not evaluation.applicable:
            return rejection_response(evaluation)
        return Response(ApplyCouponResponseSerializer(evaluation.to_dict()).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="coupons_redeem",
        summary="Redeem a coupon for an order",
        description="""
        Called by order finalization with the order's cart. The coupon is
        evaluated against that cart first and refused with the same rules as
        `apply`. Idempotent: redeeming an already redeemed coupon returns
        `already_redeemed=true` and changes nothing.
        """,
        request=RedeemCouponRequestSerializer,
        responses={
            200: OpenApiResponse(response=RedeemCouponResponseSerializer, description="Coupon redeemed"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Coupon does not apply to the cart"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="User not eligible"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Coupon not found"),
        },
        tags=["Storefront - Coupons"],
    )
    @action(detail=False, methods=["post"])
    def redeem(self, request):
        input_serializer = RedeemCouponRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = input_serializer.validated_data

        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        cart = CartSnapshot.from_payload(data["cart_total_amount"], data["items"])
        result = self.get_service().redeem(data["coupon_code"], data["user_id"], cart)
        if not result.ok:
            audit_logger.log_failed_action(
                context, "coupon_redeemed", RESOURCE_TYPE, data["coupon_code"], result.error_detail
            )
            return error_response(result)

        user_coupon = result.value["user_coupon"]
        if not result.value["already_redeemed"]:
            audit_logger.log_admin_activity(
                context,
                action_type="coupon_redeemed",
                resource_type=RESOURCE_TYPE,
                resource_id=user_coupon.id,
                changes={
                    "coupon_code": user_coupon.coupon_code,
                    "user_id": str(data["user_id"]),
                    "order_id": str(data["order_id"]) if data.get("order_id") else None,
                    "discount_amount": result.value["discount_amount"],
                },
            )
        return Response(
            {
                "coupon_code": user_coupon.coupon_code,
                "already_redeemed": result.value["already_redeemed"],
                "redeemed_at": result.value["redeemed_at"],
                "discount_amount": result.value["discount_amount"],
            },
            status=status.HTTP_200_OK,
        )
