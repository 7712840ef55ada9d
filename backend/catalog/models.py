from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from backend.core.exceptions import BusinessRuleViolation


def normalize_uom(uom):
    return (uom or '').strip().lower()


class Product(models.Model):
    """Product master"""
    name = models.CharField(max_length=200, unique=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True)
    category = models.CharField(max_length=100, blank=True, db_index=True)
    description = models.TextField(blank=True)
    base_uom = models.CharField(max_length=50, default='piece', help_text="Smallest unit stock is counted in (e.g., bottle)")
    shelf_life_days = models.PositiveIntegerField(default=365)
    # Product-wide moving average, updated on every receipt
    average_cost_price = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0.0000'))
    low_stock_threshold = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    class Meta:
        db_table = 'products'

    def get_conversion_factor(self, uom):
        """
        Number of base units in one ``uom``.

        Matching ignores case and surrounding whitespace. Unknown units raise
        a validation error keyed on ``uom``.
        """
        wanted = normalize_uom(uom)
        if wanted and wanted == normalize_uom(self.base_uom):
            return Decimal('1')
        for alternate in self.alternate_uoms.all():
            if normalize_uom(alternate.name) == wanted:
                return alternate.conversion_factor
        raise BusinessRuleViolation(
            f"Invalid UOM '{uom}' for product {self.name}",
            fields={'uom': 'Invalid UOM for this product'}
        )

    def convert_to_base(self, quantity, uom):
        """Convert a quantity expressed in ``uom`` to base units"""
        return Decimal(str(quantity)) * self.get_conversion_factor(uom)


class ProductUOM(models.Model):
    """Alternate units of measure for a product (e.g., case of 24 bottles)"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='alternate_uoms')
    name = models.CharField(max_length=50)
    conversion_factor = models.DecimalField(
        max_digits=12, decimal_places=4,
        validators=[MinValueValidator(Decimal('0.0001'))],
        help_text="Number of base units in one of this unit"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} = {self.conversion_factor} {self.product.base_uom}"

    class Meta:
        db_table = 'product_uoms'
        constraints = [
            models.UniqueConstraint(fields=['product', 'name'], name='unique_product_uom_name'),
            models.CheckConstraint(condition=models.Q(conversion_factor__gt=0), name='product_uom_factor_positive'),
        ]
