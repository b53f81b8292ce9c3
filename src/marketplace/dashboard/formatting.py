"""Display shapes for the dashboard's recent-orders card."""

OPTION_SEPARATOR = " • "


def variant_detail(item: dict) -> str | None:
    """Human label for the variant bought, e.g. ``"Size: M • Color: Navy"``."""
    variant = item.get("variant") or {}
    options = variant.get("options") or []
    if options:
        labels = []
        for option in options:
            attribute = option.get("attribute") or {}
            name = attribute.get("name")
            labels.append(f"{name}: {option.get('value')}" if name else str(option.get("value")))
        return OPTION_SEPARATOR.join(labels)

    snapshot = item.get("productSnapshot") or {}
    parts = []
    if snapshot.get("size"):
        parts.append(f"Size: {snapshot['size']}")
    if snapshot.get("color"):
        parts.append(f"Color: {snapshot['color']}")
    return OPTION_SEPARATOR.join(parts) if parts else None


def customer_name(order: dict) -> str:
    shipping = order.get("shippingAddress") or {}
    return shipping.get("name") or order.get("contactEmail") or "Unknown"


def recent_order(order: dict) -> dict:
    items = order.get("items") or []
    return {
        "id": order["id"],
        "orderNumber": order.get("orderNumber"),
        "status": order.get("status"),
        "totalPrice": order.get("totalAmount"),
        "paymentStatus": order.get("paymentStatus"),
        "customerName": customer_name(order),
        "createdAt": order.get("createdAt"),
        "itemCount": len(items),
        "items": [
            {
                "title": item.get("title"),
                "price": item.get("unitPrice"),
                "schoolName": item.get("schoolName"),
                "variantDetail": variant_detail(item),
                "status": item.get("status") or order.get("status") or "initialized",
            }
            for item in items
        ],
    }
