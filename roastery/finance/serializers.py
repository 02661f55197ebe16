from rest_framework import serializers
from .models import IndirectCost, CostEntry


class IndirectCostSerializer(serializers.ModelSerializer):
    variance = serializers.SerializerMethodField()

    class Meta:
        model = IndirectCost
        fields = ['id', 'month', 'year', 'rent', 'utilities', 'labor', 'misc', 'total_actual',
                  'estimated_total', 'variance', 'is_closed', 'closed_at', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_variance(self, obj):
        return str(obj.total_actual - obj.estimated_total)


class IndirectCostInputSerializer(serializers.Serializer):
    """Body of POST /finance/costs/ (upsert by month and year)"""
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=2000, max_value=2100)
    rent = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, default=0)
    utilities = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, default=0)
    labor = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, default=0)
    misc = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, default=0)
    estimated_total = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)


class IndirectCostUpdateSerializer(serializers.Serializer):
    rent = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    utilities = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    labor = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    misc = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    estimated_total = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)


class CostEntrySerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = CostEntry
        fields = ['id', 'entry_date', 'category', 'amount', 'description', 'created_by',
                  'created_by_name', 'created_at']
        read_only_fields = ['created_by', 'created_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero.')
        return value
