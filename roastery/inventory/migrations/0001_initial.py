# Generated manually for the initial roastery schema

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('parties', '0001_initial'),
        ('purchasing', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='GreenCoffeeLot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lot_number', models.CharField(max_length=100)),
                ('sku', models.CharField(db_index=True, max_length=100)),
                ('initial_weight', models.DecimalField(decimal_places=3, max_digits=12)),
                ('current_weight', models.DecimalField(decimal_places=3, max_digits=12)),
                ('moisture_content', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5)),
                ('purchase_cost_per_kg', models.DecimalField(decimal_places=2, max_digits=14)),
                ('weighted_avg_cost', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=14)),
                ('received_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('purchase_order_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='lots', to='purchasing.purchaseorderitem')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='green_lots', to='parties.supplier')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='green_lots', to='core.tenant')),
            ],
            options={
                'db_table': 'green_coffee_lots',
                'ordering': ['-received_at', '-id'],
                'indexes': [
                    models.Index(fields=['tenant', 'sku'], name='idx_lot_tenant_sku'),
                    models.Index(fields=['tenant', '-received_at'], name='idx_lot_tenant_received'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'lot_number'), name='uniq_lot_number_per_tenant'),
                    models.CheckConstraint(condition=models.Q(('current_weight__gte', 0), ('current_weight__lte', models.F('initial_weight'))), name='chk_lot_current_weight_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAdjustment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('qty_change', models.DecimalField(decimal_places=3, max_digits=12)),
                ('reason_code', models.CharField(choices=[('DAMAGED', 'Damaged'), ('SPILLAGE', 'Spillage'), ('SAMPLE', 'Sample'), ('COUNT_CORRECTION', 'Count Correction'), ('OTHER', 'Other')], max_length=30)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('adjusted_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_adjustments', to=settings.AUTH_USER_MODEL)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='adjustments', to='inventory.greencoffeelot')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock_adjustments', to='core.tenant')),
            ],
            options={
                'db_table': 'stock_adjustments',
                'ordering': ['-created_at'],
            },
        ),
    ]
