from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from storefront.api.serializers import (
    ComputedPackRowSerializer,
    ErrorResponseSerializer,
    InventoryCreateSerializer,
    InventoryListQuerySerializer,
    InventoryListResponseSerializer,
    InventorySerializer,
    InventoryUpdateResponseSerializer,
    InventoryUpdateSerializer,
    StockAdjustmentResponseSerializer,
    StockAdjustmentSerializer,
    VariantStockSerializer,
)
from storefront.api.views.errors import error_response
from storefront.audit.logger import AuditContext
from storefront.inventory.domain.services import InventoryService
from storefront.permissions import IsAdminRole

RESOURCE_TYPE = "INVENTORY"


def _audit_snapshot(inventory):
    return {
        "product_variant_id": str(inventory.product_variant_id),
        "stock_quantity": inventory.stock_quantity,
        "min_stock_level": inventory.min_stock_level,
        "location": inventory.location,
        "notes": inventory.notes,
        "is_active": inventory.is_active,
    }


class InventoryViewSet(viewsets.ViewSet):
    """
    Admin management of base unit inventory records.
    """

    permission_classes = [IsAdminRole]

    def get_permissions(self):
        if self.action == "variant":
            return [IsAuthenticated()]
        return super().get_permissions()

    def get_service(self) -> InventoryService:
        return container.inventory_service()

    def _audit(self, request, method_name, *args, **kwargs):
        audit_logger = container.audit_logger()
        getattr(audit_logger, method_name)(AuditContext.from_request(request), *args, **kwargs)

    @extend_schema(
        operation_id="inventory_list",
        summary="List inventory records",
        description="""
        **What it receives:**
        - `page`, `limit`: pagination (limit max 100)
        - `is_active`, `stock_status`, `location`, `product_id`, `search`: filters
        - `sort_by`, `sort_order`: ordering
        - `include_computed_packs`: also return derived stock rows for pack variants

        **What it returns:**
        - `results`: base unit inventory records
        - `computed_packs`: derived pack rows (never stored)
        - `pagination`
        """,
        parameters=[
            OpenApiParameter(name="page", type=int, description="Page number"),
            OpenApiParameter(name="limit", type=int, description="Items per page"),
            OpenApiParameter(name="is_active", type=bool, description="Filter by active flag"),
            OpenApiParameter(name="stock_status", type=str, enum=["out_of_stock", "low_stock", "in_stock"]),
            OpenApiParameter(name="location", type=str, description="Location contains"),
            OpenApiParameter(name="product_id", type=str, description="Product UUID"),
            OpenApiParameter(name="search", type=str, description="Search SKU, location and notes"),
            OpenApiParameter(name="sort_by", type=str, description="Sort field"),
            OpenApiParameter(name="sort_order", type=str, enum=["asc", "desc"]),
            OpenApiParameter(name="include_computed_packs", type=bool, description="Include derived pack rows"),
        ],
        responses={
            200: OpenApiResponse(response=InventoryListResponseSerializer, description="Inventory page"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid query parameters"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required"),
        },
        tags=["Storefront - Inventory"],
    )
    def list(self, request):
        query = InventoryListQuerySerializer(data=request.query_params.dict())
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        params = dict(query.validated_data)

        filters = {
            key: params.get(key) for key in ("is_active", "stock_status", "location", "product_id", "search")
        }
        result = self.get_service().list_inventory(
            filters=filters,
            page=params["page"],
            limit=params["limit"],
            sort_by=params["sort_by"],
            sort_order=params["sort_order"],
            include_computed_packs=params["include_computed_packs"],
        )
        if not result.ok:
            return error_response(result)

        return Response(
            {
                "results": InventorySerializer(result.value["results"], many=True).data,
                "computed_packs": ComputedPackRowSerializer(result.value["computed_packs"], many=True).data,
                "pagination": result.value["pagination"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="inventory_create",
        summary="Create inventory for a base unit variant",
        description="""
        **What it receives:**
        - `product_variant_id` (UUID): must be a base unit, packs are rejected
        - `stock_quantity`, `min_stock_level` (integers >= 0)
        - `location`, `notes` (optional)

        Reactivates a previously deleted record for the same variant.
        """,
        request=InventoryCreateSerializer,
        responses={
            201: OpenApiResponse(response=InventorySerializer, description="Inventory created"),
            400: OpenApiResponse(
                response=ErrorResponseSerializer, description="Pack variant, duplicate record or invalid data"
            ),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Variant not found"),
        },
        tags=["Storefront - Inventory"],
    )
    def create(self, request):
        input_serializer = InventoryCreateSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = input_serializer.validated_data

        result = self.get_service().create_inventory(
            data["product_variant_id"],
            stock_quantity=data["stock_quantity"],
            min_stock_level=data["min_stock_level"],
            location=data.get("location"),
            notes=data.get("notes"),
        )
        if not result.ok:
            self._audit(
                request, "log_failed_action", "inventory_created", RESOURCE_TYPE, None, result.error_detail
            )
            return error_response(result)

        inventory = result.value
        self._audit(request, "log_resource_creation", RESOURCE_TYPE, inventory.id, _audit_snapshot(inventory))
        return Response(InventorySerializer(inventory).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="inventory_retrieve",
        summary="Get an inventory record",
        responses={
            200: OpenApiResponse(response=InventorySerializer, description="Inventory record"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Inventory not found"),
        },
        tags=["Storefront - Inventory"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_inventory(pk)
        if not result.ok:
            return error_response(result)
        return Response(InventorySerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="inventory_update",
        summary="Update an inventory record",
        description="""
        **What it receives:**
        - Any of `stock_quantity`, `min_stock_level`, `location`, `notes`, `is_active`, `last_sold_date`

        The product variant can never be changed. Records of variants that are
        now packs are rejected.
        """,
        request=InventoryUpdateSerializer,
        responses={
            200: OpenApiResponse(response=InventoryUpdateResponseSerializer, description="Inventory updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid update"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Inventory not found"),
        },
        tags=["Storefront - Inventory"],
    )
    def partial_update(self, request, pk=None):
        input_serializer = InventoryUpdateSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        result = self.get_service().update_inventory(pk, dict(input_serializer.validated_data))
        if not result.ok:
            self._audit(request, "log_failed_action", "inventory_updated", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        value = result.value
        inventory = value["inventory"]
        self._audit(
            request,
            "log_resource_update",
            RESOURCE_TYPE,
            inventory.id,
            value["old_values"],
            value["new_values"],
            extra={"stock_change": value["stock_change"]} if value["stock_change"] is not None else None,
        )
        return Response(
            {
                "inventory": InventorySerializer(inventory).data,
                "updated_fields": value["updated_fields"],
                "stock_change": value["stock_change"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="inventory_delete",
        summary="Deactivate an inventory record",
        description="Soft delete. The record is kept with `is_active=false`.",
        responses={
            204: OpenApiResponse(description="Inventory deactivated"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Inventory not found"),
        },
        tags=["Storefront - Inventory"],
    )
    def destroy(self, request, pk=None):
        result = self.get_service().delete_inventory(pk)
        if not result.ok:
            return error_response(result)

        inventory = result.value
        self._audit(request, "log_resource_deletion", RESOURCE_TYPE, inventory.id, _audit_snapshot(inventory))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="inventory_adjust_stock",
        summary="Adjust stock of a base unit",
        description="""
        **What it receives:**
        - `operation`: `add`, `remove` or `set`
        - `quantity`: units to add/remove, or the new level for `set`
        """,
        request=StockAdjustmentSerializer,
        responses={
            200: OpenApiResponse(response=StockAdjustmentResponseSerializer, description="Stock adjusted"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid or insufficient stock"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Inventory not found"),
        },
        tags=["Storefront - Inventory"],
    )
    @action(detail=True, methods=["post"])
    def adjust(self, request, pk=None):
        input_serializer = StockAdjustmentSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = input_serializer.validated_data

        result = self.get_service().adjust_stock(pk, data["quantity"], data["operation"])
        if not result.ok:
            self._audit(request, "log_failed_action", "stock_adjusted", RESOURCE_TYPE, pk, result.error_detail)
            return error_response(result)

        value = result.value
        self._audit(
            request,
            "log_resource_update",
            RESOURCE_TYPE,
            value["inventory"].id,
            {"stock_quantity": value["old_stock"]},
            {"stock_quantity": value["new_stock"]},
            extra={"operation": value["operation"], "quantity": value["quantity"]},
        )
        return Response(
            {
                "inventory": InventorySerializer(value["inventory"]).data,
                "operation": value["operation"],
                "quantity": value["quantity"],
                "old_stock": value["old_stock"],
                "new_stock": value["new_stock"],
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="inventory_for_variant",
        summary="Stock for any variant",
        description="""
        Resolves packs to their base unit and returns the base unit's record
        with the number of sellable units of the requested variant.
        """,
        responses={
            200: OpenApiResponse(response=VariantStockSerializer, description="Variant stock"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Variant or inventory not found"),
            500: OpenApiResponse(response=ErrorResponseSerializer, description="Pack has no base unit"),
        },
        tags=["Storefront - Inventory"],
    )
    @action(detail=False, methods=["get"], url_path=r"variant/(?P<variant_id>[^/.]+)")
    def variant(self, request, variant_id=None):
        result = self.get_service().get_inventory_for_variant(variant_id)
        if not result.ok:
            return error_response(result)
        return Response(VariantStockSerializer(result.value).data, status=status.HTTP_200_OK)
