# Generated manually for the initial roastery schema

import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='IndirectCost',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('month', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('year', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(2000), django.core.validators.MaxValueValidator(2100)])),
                ('rent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('utilities', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('labor', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('misc', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('total_actual', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('estimated_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('is_closed', models.BooleanField(default=False)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='indirect_costs', to='core.tenant')),
            ],
            options={
                'db_table': 'indirect_costs',
                'ordering': ['-year', '-month'],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'year', 'month'), name='uniq_indirect_cost_month'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CostEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entry_date', models.DateField()),
                ('category', models.CharField(choices=[('RENT', 'Rent'), ('UTILITIES', 'Utilities'), ('LABOR', 'Labor'), ('MISC', 'Miscellaneous')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=16)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cost_entries', to='core.tenant')),
            ],
            options={
                'db_table': 'cost_entries',
                'ordering': ['-entry_date', '-id'],
                'indexes': [
                    models.Index(fields=['tenant', '-entry_date'], name='idx_cost_entry_tenant_date'),
                ],
            },
        ),
    ]
