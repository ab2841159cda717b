from django.db import models


class RangeKind(models.TextChoices):
    NCF = "NCF", "Comprobante fiscal (NCF)"
    CF = "CF", "Consumidor final (CF)"


class RangeConfig(models.Model):
    """
    Authorized fiscal number range and its allocation cursor.

    One row per range kind, created by configuration tooling before any
    allocation. ``last_assigned``, ``released_numbers`` and ``issued_marks``
    are written only through fiscal.services.range_store; every committed
    write bumps ``version``, which is the compare-and-swap token.

    ``issued_marks`` keeps one entry per prefix/width series that the cursor
    has left: no later block of that series may start at or below it.
    """

    kind = models.CharField(
        primary_key=True,
        max_length=8,
        choices=RangeKind.choices,
    )

    range_start = models.CharField(
        max_length=32,
        help_text="First number of the authorized range (e.g. B01000000001).",
    )

    range_end = models.CharField(
        max_length=32,
        help_text="Last number of the authorized range, same prefix and width.",
    )

    last_assigned = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Last number issued. Empty means nothing was issued yet.",
    )

    released_numbers = models.JSONField(
        default=list,
        blank=True,
        help_text="Numbers whose invoice was deleted. Audit trail, never reused.",
    )

    issued_marks = models.JSONField(
        default=list,
        blank=True,
        help_text="Highest number issued in each series left behind by a rotation.",
    )

    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fiscal_range_config"
        verbose_name = "Fiscal number range"
        verbose_name_plural = "Fiscal number ranges"
        ordering = ["kind"]

    def __str__(self):
        return f"{self.kind}: {self.range_start}..{self.range_end} (last={self.last_assigned or '-'})"
