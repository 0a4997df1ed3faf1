from prometheus_client import Counter, Gauge, Histogram


# Coupon Metrics
coupon_evaluations_total = Counter("storefront_coupon_evaluations_total", "Coupon evaluations", ["outcome"])
coupon_rejections_total = Counter("storefront_coupon_rejections_total", "Coupon rejections by reason", ["reason"])
coupon_redemptions_total = Counter("storefront_coupon_redemptions_total", "Coupon redemptions", ["result"])
coupon_discount_amount = Histogram(
    "storefront_coupon_discount_amount",
    "Discount amount granted per successful evaluation",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)
coupons_generated_total = Counter("storefront_coupons_generated_total", "Coupon codes generated for campaigns")

# Inventory Metrics
inventory_mutations_total = Counter("storefront_inventory_mutations_total", "Inventory mutations", ["operation"])
inventory_low_stock = Gauge("storefront_inventory_low_stock", "Active inventory records at or below min stock level")

# Data integrity (catalog authoring problems; alert on any increase)
data_integrity_errors_total = Counter(
    "storefront_data_integrity_errors_total", "Catalog data integrity errors", ["kind"]
)

# Audit
audit_entries_total = Counter(
    "storefront_audit_entries_total", "Admin audit entries written", ["resource_type", "status"]
)
