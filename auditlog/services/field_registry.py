"""
Field registry: display label, value type and sensitivity per entity field.

The tables below are configuration data for the entity types the shop
audits. Lookups are pure and total: unknown (entity_type, field_name) pairs
fall back to the raw field name, STRING type and not sensitive.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from auditlog.models.enums import FieldType


# Masked for every entity type, whatever the tables say
SENSITIVE_FIELDS = frozenset({
    "password",
    "passportNumber",
    "bankAccount",
    "salary",
})

# Stored in place of a sensitive value; the raw value never reaches the table
STORED_MASK = "***MASKED***"


FIELD_LABELS: Dict[str, Dict[str, str]] = {
    "Product": {
        "name": "Nomi",
        "sku": "SKU",
        "purchasePrice": "Xarid narxi",
        "sellingPrice": "Sotuv narxi",
        "quantity": "Miqdor",
        "minStockLevel": "Minimal zaxira",
        "season": "Mavsum",
        "brandName": "Brend",
        "categoryName": "Kategoriya",
        "sizeString": "O'lcham",
        "active": "Faol",
        "description": "Tavsif",
    },
    "Customer": {
        "firstName": "Ism",
        "lastName": "Familiya",
        "phone": "Telefon",
        "email": "Email",
        "address": "Manzil",
        "birthDate": "Tug'ilgan sana",
        "balance": "Balans",
        "notes": "Izohlar",
    },
    "Employee": {
        "firstName": "Ism",
        "lastName": "Familiya",
        "position": "Lavozim",
        "salary": "Maosh",
        "phone": "Telefon",
        "email": "Email",
        "passportNumber": "Pasport raqami",
        "bankAccount": "Hisob raqami",
        "hireDate": "Ishga qabul qilingan sana",
        "active": "Faol",
    },
    "Supplier": {
        "name": "Nomi",
        "contactPerson": "Kontakt shaxs",
        "phone": "Telefon",
        "email": "Email",
        "address": "Manzil",
        "inn": "INN",
        "bankAccount": "Hisob raqami",
        "paymentTerms": "To'lov shartlari",
    },
    "Brand": {
        "name": "Nomi",
        "country": "Mamlakat",
        "active": "Faol",
    },
    "Category": {
        "name": "Nomi",
        "description": "Tavsif",
    },
    "Sale": {
        "saleDate": "Sotuv sanasi",
        "totalAmount": "Umumiy summa",
        "discount": "Chegirma",
        "finalAmount": "Yakuniy summa",
        "paidAmount": "To'langan summa",
        "customerName": "Mijoz",
        "employeeName": "Xodim",
        "paymentMethod": "To'lov usuli",
        "status": "Holat",
    },
    "PurchaseOrder": {
        "orderDate": "Buyurtma sanasi",
        "expectedDeliveryDate": "Kutilayotgan yetkazib berish sanasi",
        "actualDeliveryDate": "Haqiqiy yetkazib berish sanasi",
        "totalAmount": "Umumiy summa",
        "supplierName": "Yetkazib beruvchi",
        "status": "Holat",
        "notes": "Izohlar",
    },
    "Payment": {
        "amount": "Summa",
        "method": "To'lov usuli",
        "paymentDate": "To'lov sanasi",
        "notes": "Izohlar",
    },
    "Debt": {
        "originalAmount": "Boshlang'ich summa",
        "remainingAmount": "Qolgan summa",
        "dueDate": "To'lov muddati",
        "status": "Holat",
    },
}


FIELD_TYPES: Dict[str, Dict[str, FieldType]] = {
    "Product": {
        "purchasePrice": FieldType.CURRENCY,
        "sellingPrice": FieldType.CURRENCY,
        "quantity": FieldType.NUMBER,
        "minStockLevel": FieldType.NUMBER,
        "season": FieldType.ENUM,
        "active": FieldType.BOOLEAN,
    },
    "Customer": {
        "birthDate": FieldType.DATE,
        "balance": FieldType.CURRENCY,
    },
    "Employee": {
        "salary": FieldType.CURRENCY,
        "hireDate": FieldType.DATE,
        "active": FieldType.BOOLEAN,
    },
    "Brand": {
        "active": FieldType.BOOLEAN,
    },
    "Sale": {
        "saleDate": FieldType.DATETIME,
        "totalAmount": FieldType.CURRENCY,
        "discount": FieldType.CURRENCY,
        "finalAmount": FieldType.CURRENCY,
        "paidAmount": FieldType.CURRENCY,
        "paymentMethod": FieldType.ENUM,
        "status": FieldType.ENUM,
    },
    "PurchaseOrder": {
        "orderDate": FieldType.DATE,
        "expectedDeliveryDate": FieldType.DATE,
        "actualDeliveryDate": FieldType.DATE,
        "totalAmount": FieldType.CURRENCY,
        "status": FieldType.ENUM,
    },
    "Payment": {
        "amount": FieldType.CURRENCY,
        "method": FieldType.ENUM,
        "paymentDate": FieldType.DATETIME,
    },
    "Debt": {
        "originalAmount": FieldType.CURRENCY,
        "remainingAmount": FieldType.CURRENCY,
        "dueDate": FieldType.DATE,
        "status": FieldType.ENUM,
    },
}


@dataclass(frozen=True)
class FieldSpec:
    """Resolved display metadata for one field."""
    label: str
    field_type: FieldType
    sensitive: bool


class FieldRegistry:
    """Read-only lookup over the label and type tables."""

    def __init__(
        self,
        labels: Optional[Dict[str, Dict[str, str]]] = None,
        types: Optional[Dict[str, Dict[str, FieldType]]] = None,
        sensitive_fields=SENSITIVE_FIELDS,
    ):
        self._labels = labels if labels is not None else FIELD_LABELS
        self._types = types if types is not None else FIELD_TYPES
        self._sensitive = frozenset(sensitive_fields)

    def label(self, entity_type: str, field_name: str) -> str:
        return self._labels.get(entity_type, {}).get(field_name, field_name)

    def field_type(self, entity_type: str, field_name: str) -> FieldType:
        return self._types.get(entity_type, {}).get(field_name, FieldType.STRING)

    def is_sensitive(self, entity_type: str, field_name: str) -> bool:
        # Sensitivity is a property of the field name across all entities
        return field_name in self._sensitive

    def lookup(self, entity_type: str, field_name: str) -> FieldSpec:
        return FieldSpec(
            label=self.label(entity_type, field_name),
            field_type=self.field_type(entity_type, field_name),
            sensitive=self.is_sensitive(entity_type, field_name),
        )

    def mask_snapshot(
        self, entity_type: str, snapshot: Optional[Dict[str, Any]]
    ) -> Optional[Dict[str, Any]]:
        """Copy of snapshot with every sensitive value replaced by STORED_MASK."""
        if not snapshot:
            return snapshot
        return {
            key: STORED_MASK if value is not None and self.is_sensitive(entity_type, key) else value
            for key, value in snapshot.items()
        }


default_registry = FieldRegistry()
