from django.db import migrations

DEFAULT_PAYMENT_METHODS = [
    "Efectivo",
    "Transferencia",
    "Tarjeta de débito",
    "Tarjeta de crédito",
]


def seed_payment_methods(apps, schema_editor):
    PaymentMethod = apps.get_model("payments", "PaymentMethod")
    for name in DEFAULT_PAYMENT_METHODS:
        PaymentMethod.objects.update_or_create(name=name, defaults={"is_active": True})


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_payment_methods, migrations.RunPython.noop),
    ]
