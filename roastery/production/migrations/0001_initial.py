# Generated manually for the initial roastery schema

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('inventory', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RoastBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch_number', models.CharField(max_length=100)),
                ('product_sku', models.CharField(db_index=True, max_length=100)),
                ('roast_profile', models.CharField(blank=True, max_length=100)),
                ('weight_in', models.DecimalField(decimal_places=3, max_digits=12)),
                ('weight_out', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('shrinkage_pct', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('status', models.CharField(choices=[('PENDING_ROAST', 'Pending Roast'), ('ROASTED', 'Roasted'), ('QC_PASSED', 'QC Passed'), ('QC_FAILED', 'QC Failed')], default='PENDING_ROAST', max_length=20)),
                ('roasted_at', models.DateTimeField(blank=True, null=True)),
                ('available_quantity_kg', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('reserved_quantity_kg', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='roast_batches', to=settings.AUTH_USER_MODEL)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='roast_batches', to='inventory.greencoffeelot')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='roast_batches', to='core.tenant')),
            ],
            options={
                'db_table': 'roast_batches',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['tenant', 'status', 'product_sku'], name='idx_batch_sellable'),
                    models.Index(fields=['tenant', 'roasted_at'], name='idx_batch_tenant_roasted'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'batch_number'), name='uniq_batch_number_per_tenant'),
                    models.CheckConstraint(condition=models.Q(('available_quantity_kg__gte', 0)), name='chk_batch_available_non_negative'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity_kg__gte', 0)), name='chk_batch_reserved_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QualityControl',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('aroma', models.DecimalField(decimal_places=1, max_digits=4)),
                ('flavor', models.DecimalField(decimal_places=1, max_digits=4)),
                ('aftertaste', models.DecimalField(decimal_places=1, max_digits=4)),
                ('acidity', models.DecimalField(decimal_places=1, max_digits=4)),
                ('body', models.DecimalField(decimal_places=1, max_digits=4)),
                ('total_score', models.DecimalField(decimal_places=1, max_digits=5)),
                ('passed', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('batch', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='quality_control', to='production.roastbatch')),
                ('inspected_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quality_controls', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quality_controls', to='core.tenant')),
            ],
            options={
                'db_table': 'quality_controls',
                'ordering': ['-created_at'],
            },
        ),
    ]
