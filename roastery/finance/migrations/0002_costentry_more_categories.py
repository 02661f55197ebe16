from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('finance', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='costentry',
            name='category',
            field=models.CharField(choices=[('RENT', 'Rent'), ('UTILITIES', 'Utilities'), ('LABOR', 'Labor'), ('FUEL', 'Fuel'), ('GAS', 'Gas'), ('TRANSPORTATION', 'Transportation'), ('MAINTENANCE', 'Maintenance'), ('SUPPLIES', 'Supplies'), ('INSURANCE', 'Insurance'), ('DEPRECIATION', 'Depreciation'), ('MISC', 'Miscellaneous')], max_length=20),
        ),
    ]
