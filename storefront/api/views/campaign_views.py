from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from infrastructure.container import container
from storefront.api.serializers import (
    CampaignCreateSerializer,
    CampaignDeactivateResponseSerializer,
    CampaignDetailResponseSerializer,
    CampaignListQuerySerializer,
    CampaignListResponseSerializer,
    CampaignSerializer,
    CampaignUpdateSerializer,
    ErrorResponseSerializer,
    GenerateCodesRequestSerializer,
    GenerateCodesResponseSerializer,
    UsageStatisticsResponseSerializer,
)
from storefront.api.views.errors import error_response
from storefront.audit.logger import AuditContext
from storefront.permissions import IsAdminRole
from storefront.promotions.domain.services import CampaignService, CouponService

RESOURCE_TYPE = "COUPON_CAMPAIGN"


class CampaignViewSet(viewsets.ViewSet):
    """
    Admin operations on coupon campaigns.

    Campaigns are addressed by numeric id or slug. Every mutation is written
    to the admin audit trail.
    """

    permission_classes = [IsAdminRole]

    def get_service(self) -> CampaignService:
        return container.campaign_service()

    def get_coupon_service(self) -> CouponService:
        return container.coupon_service()

    @extend_schema(
        operation_id="campaign_generate_codes",
        summary="Issue coupon codes to users",
        description="""
        **What it receives:**
        - `user_ids`: users to issue a coupon to
        - `code_length` (optional): length of the random suffix

        **What it returns:**
        - `generated`: issued codes
        - `failed`: users that were skipped, with the reason
        """,
        request=GenerateCodesRequestSerializer,
        responses={
            201: OpenApiResponse(response=GenerateCodesResponseSerializer, description="Codes generated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Campaign inactive or exhausted"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Campaign not found"),
        },
        tags=["Storefront - Campaigns"],
    )
    @action(detail=True, methods=["post"], url_path="generate-codes")
    def generate_codes(self, request, pk=None):
        input_serializer = GenerateCodesRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = input_serializer.validated_data

        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        result = self.get_coupon_service().generate_user_coupons(pk, data["user_ids"], length=data.get("code_length"))
        if not result.ok:
            audit_logger.log_failed_action(context, "coupon_codes_generated", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        value = result.value
        generated = [
            {"user_id": str(user_coupon.user_id), "coupon_code": user_coupon.coupon_code}
            for user_coupon in value["generated"]
        ]
        audit_logger.log_admin_activity(
            context,
            action_type="coupon_codes_generated",
            resource_type=RESOURCE_TYPE,
            resource_id=value["campaign"].pk,
            changes={
                "total_requested": value["total_requested"],
                "total_generated": len(generated),
                "failed": value["failed"],
            },
        )
        return Response(
            {
                "campaign_id": value["campaign"].pk,
                "generated": generated,
                "failed": value["failed"],
                "total_requested": value["total_requested"],
                "total_generated": len(generated),
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="campaign_stats",
        summary="Campaign usage statistics",
        responses={
            200: OpenApiResponse(response=UsageStatisticsResponseSerializer, description="Usage statistics"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Campaign not found"),
        },
        tags=["Storefront - Campaigns"],
    )
    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        result = self.get_coupon_service().get_usage_statistics(pk)
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="campaigns_list",
        summary="List coupon campaigns",
        parameters=[
            OpenApiParameter(name="is_active", type=bool, description="Filter by active flag"),
            OpenApiParameter(name="discount_type", type=str, enum=["PERCENTAGE", "AMOUNT"]),
            OpenApiParameter(name="search", type=str, description="Matches name, description or slug"),
            OpenApiParameter(name="sort_by", type=str, description="Sort field"),
            OpenApiParameter(name="sort_order", type=str, enum=["asc", "desc"]),
            OpenApiParameter(name="page", type=int, description="Page number"),
            OpenApiParameter(name="limit", type=int, description="Items per page"),
        ],
        responses={
            200: OpenApiResponse(response=CampaignListResponseSerializer, description="Campaigns"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid query parameters"),
        },
        tags=["Storefront - Campaigns"],
    )
    def list(self, request):
        query = CampaignListQuerySerializer(data=request.query_params.dict())
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        result = self.get_service().list_campaigns(query.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(
            {
                "results": CampaignSerializer(result.value["results"], many=True).data,
                "pagination": result.value["pagination"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="campaigns_retrieve",
        summary="Get a campaign by id or slug",
        responses={
            200: OpenApiResponse(response=CampaignDetailResponseSerializer, description="Campaign with statistics"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Campaign not found"),
        },
        tags=["Storefront - Campaigns"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_campaign(pk)
        if not result.ok:
            return error_response(result)
        return Response(
            {
                "campaign": CampaignSerializer(result.value["campaign"]).data,
                "statistics": result.value["statistics"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="campaigns_create",
        summary="Create a coupon campaign",
        request=CampaignCreateSerializer,
        responses={
            201: OpenApiResponse(response=CampaignSerializer, description="Campaign created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed"),
        },
        tags=["Storefront - Campaigns"],
    )
    def create(self, request):
        input_serializer = CampaignCreateSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        result = self.get_service().create_campaign(input_serializer.validated_data)
        if not result.ok:
            audit_logger.log_failed_action(context, "coupon_campaign_created", RESOURCE_TYPE, None, result.error_detail)
            return error_response(result)

        data = CampaignSerializer(result.value).data
        audit_logger.log_resource_creation(context, RESOURCE_TYPE, result.value.pk, data)
        return Response(data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="campaigns_partial_update",
        summary="Update a coupon campaign",
        description="""
        Partial update. `slug` and `current_global_usage` cannot be changed;
        the slug follows the name.
        """,
        request=CampaignUpdateSerializer,
        responses={
            200: OpenApiResponse(response=CampaignSerializer, description="Campaign updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Campaign not found"),
        },
        tags=["Storefront - Campaigns"],
    )
    def partial_update(self, request, pk=None):
        input_serializer = CampaignUpdateSerializer(data=request.data, partial=True)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        result = self.get_service().update_campaign(pk, input_serializer.validated_data)
        if not result.ok:
            audit_logger.log_failed_action(context, "coupon_campaign_updated", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        campaign = result.value["campaign"]
        audit_logger.log_resource_update(
            context, RESOURCE_TYPE, campaign.pk, result.value["old_values"], result.value["new_values"]
        )
        return Response(CampaignSerializer(campaign).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="campaigns_deactivate",
        summary="Deactivate a coupon campaign",
        description="""
        Soft delete. The campaign and all coupons issued from it become
        inactive; nothing is removed.
        """,
        responses={
            200: OpenApiResponse(response=CampaignDeactivateResponseSerializer, description="Campaign deactivated"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Campaign not found"),
        },
        tags=["Storefront - Campaigns"],
    )
    def destroy(self, request, pk=None):
        audit_logger = container.audit_logger()
        context = AuditContext.from_request(request)
        result = self.get_service().deactivate_campaign(pk)
        if not result.ok:
            audit_logger.log_failed_action(context, "coupon_campaign_deleted", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        campaign = result.value["campaign"]
        audit_logger.log_resource_deletion(
            context,
            RESOURCE_TYPE,
            campaign.pk,
            {"name": campaign.name, "slug": campaign.slug, "deactivated_coupons": result.value["deactivated_coupons"]},
        )
        return Response(
            {
                "campaign": CampaignSerializer(campaign).data,
                "deactivated_coupons": result.value["deactivated_coupons"],
            },
            status=status.HTTP_200_OK,
        )
