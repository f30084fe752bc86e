"""
Human-readable labels for operations.

Labels are derived only from the member records' entity types and actions.
Every lookup degrades to the raw entity type or action string, so the
result is never empty.
"""
from typing import Dict, List, Sequence, Tuple

from auditlog.models.audit import AuditRecord

ENTITY_LABELS: Dict[str, str] = {
    "Product": "Mahsulot",
    "Sale": "Sotuv",
    "Customer": "Mijoz",
    "Payment": "To'lov",
    "Debt": "Qarz",
    "PurchaseOrder": "Xarid",
    "PurchasePayment": "Xarid to'lovi",
    "PurchaseReturn": "Xarid qaytarish",
    "Supplier": "Ta'minotchi",
    "Employee": "Xodim",
    "User": "Foydalanuvchi",
    "Role": "Rol",
    "Brand": "Brend",
    "Category": "Kategoriya",
    "StockMovement": "Ombor harakati",
}

ACTION_LABELS: Dict[str, str] = {
    "CREATE": "yaratildi",
    "UPDATE": "o'zgartirildi",
    "DELETE": "o'chirildi",
}

# Operation labels for single-entity groups, keyed by (entity_type, action)
OPERATION_LABELS: Dict[Tuple[str, str], str] = {
    ("Product", "CREATE"): "Mahsulot qo'shish",
    ("Product", "UPDATE"): "Mahsulot tahrirlash",
    ("Product", "DELETE"): "Mahsulot o'chirish",
    ("Customer", "CREATE"): "Mijoz qo'shish",
    ("Customer", "UPDATE"): "Mijoz tahrirlash",
    ("Customer", "DELETE"): "Mijoz o'chirish",
    ("Employee", "CREATE"): "Xodim qo'shish",
    ("Employee", "UPDATE"): "Xodim tahrirlash",
    ("Employee", "DELETE"): "Xodim o'chirish",
    ("Supplier", "CREATE"): "Ta'minotchi qo'shish",
    ("Supplier", "UPDATE"): "Ta'minotchi tahrirlash",
    ("Supplier", "DELETE"): "Ta'minotchi o'chirish",
    ("User", "CREATE"): "Foydalanuvchi yaratish",
    ("User", "UPDATE"): "Foydalanuvchi tahrirlash",
    ("User", "DELETE"): "Foydalanuvchi o'chirish",
    ("Role", "CREATE"): "Rol yaratish",
    ("Role", "UPDATE"): "Rol tahrirlash",
    ("Role", "DELETE"): "Rol o'chirish",
    ("Brand", "CREATE"): "Brend qo'shish",
    ("Brand", "UPDATE"): "Brend tahrirlash",
    ("Brand", "DELETE"): "Brend o'chirish",
    ("Category", "CREATE"): "Kategoriya qo'shish",
    ("Category", "UPDATE"): "Kategoriya tahrirlash",
    ("Category", "DELETE"): "Kategoriya o'chirish",
}

DEBT_SETTLED_LABEL = "Qarz to'lash"
SALE_CREATED_LABEL = "Sotuv yaratish"
PURCHASE_CREATED_LABEL = "Xarid yaratish"
PURCHASE_PAYMENT_LABEL = "Xarid to'lovi"
STOCK_MOVEMENT_LABEL = "Ombor harakati"
CHANGES_SUFFIX = "ta o'zgarish"


def entity_label(entity_type: str) -> str:
    return ENTITY_LABELS.get(entity_type, entity_type)


def action_label(action: str) -> str:
    return ACTION_LABELS.get(action, action)


def distinct_entity_types(records: Sequence[AuditRecord]) -> List[str]:
    """Entity types in first-seen order."""
    seen = []
    for record in records:
        if record.entity_type not in seen:
            seen.append(record.entity_type)
    return seen


def primary_action_label(records: Sequence[AuditRecord]) -> str:
    """
    Name the business action a group of records represents.

    Precedence: known entity combinations first, then the single-entity
    table, then a generic change count. Records are expected newest first.
    """
    entity_types = set(record.entity_type for record in records)
    actions = set(record.action for record in records)

    # A payment against a debt is a settlement
    if "Payment" in entity_types and "Debt" in entity_types:
        return DEBT_SETTLED_LABEL

    # A new sale wins even when it also produced payments or a debt
    if "Sale" in entity_types and "CREATE" in actions:
        return SALE_CREATED_LABEL

    if "PurchaseOrder" in entity_types and "CREATE" in actions:
        return PURCHASE_CREATED_LABEL

    if "PurchasePayment" in entity_types:
        return PURCHASE_PAYMENT_LABEL

    if "StockMovement" in entity_types:
        return STOCK_MOVEMENT_LABEL

    if len(entity_types) == 1:
        entity_type = records[0].entity_type
        action = records[0].action
        label = OPERATION_LABELS.get((entity_type, action))
        if label:
            return label
        return f"{entity_label(entity_type)} {action_label(action)}"

    return f"{len(records)} {CHANGES_SUFFIX}"


def summarize(records: Sequence[AuditRecord]) -> str:
    """One-line summary of a group of records."""
    if len(records) == 1:
        record = records[0]
        return f"{entity_label(record.entity_type)} {action_label(record.action)}"

    labels = ", ".join(entity_label(t) for t in distinct_entity_types(records))
    return f"{len(records)} {CHANGES_SUFFIX}: {labels}"
