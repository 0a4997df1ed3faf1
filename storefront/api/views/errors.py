from rest_framework import status
from rest_framework.response import Response

from storefront.promotions.domain.services import CouponRejection
from storefront.services.base import ErrorCodes

NOT_FOUND_ERRORS = {
    ErrorCodes.NOT_FOUND,
    ErrorCodes.VARIANT_NOT_FOUND,
    ErrorCodes.INVENTORY_NOT_FOUND,
    ErrorCodes.NO_INVENTORY_RECORD,
    ErrorCodes.COUPON_NOT_FOUND,
    ErrorCodes.CAMPAIGN_NOT_FOUND,
}

FORBIDDEN_ERRORS = {
    ErrorCodes.COUPON_NOT_ELIGIBLE,
}

# Catalog data problems and failures the caller cannot fix
SERVER_ERRORS = {
    ErrorCodes.DATA_INTEGRITY_ERROR,
    ErrorCodes.BASE_UNIT_NOT_FOUND,
    ErrorCodes.INTERNAL_ERROR,
}

REJECTION_STATUSES = {
    CouponRejection.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    CouponRejection.NOT_ELIGIBLE: status.HTTP_403_FORBIDDEN,
}


def status_for_error(error_code):
    if error_code in NOT_FOUND_ERRORS:
        return status.HTTP_404_NOT_FOUND
    if error_code in FORBIDDEN_ERRORS:
        return status.HTTP_403_FORBIDDEN
    if error_code in SERVER_ERRORS:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


def error_response(result):
    """Response for a failed ServiceResult."""
    return Response({"detail": result.error_detail, "error": result.error}, status=status_for_error(result.error))


def rejection_response(evaluation):
    """Response for a coupon that could not be applied."""
    return Response(
        {"detail": evaluation.reason, "error": evaluation.rejection},
        status=REJECTION_STATUSES.get(evaluation.rejection, status.HTTP_400_BAD_REQUEST),
    )
