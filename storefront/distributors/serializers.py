from rest_framework import serializers
from .models import Distributor


class DistributorSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)
    full_name = serializers.CharField(source='user.full_name', read_only=True)
    phone = serializers.CharField(source='user.phone', read_only=True)

    class Meta:
        model = Distributor
        fields = ['id', 'user', 'company_rif', 'company_name', 'business_type', 'email', 'full_name', 'phone',
                  'discount_percentage', 'credit_limit', 'is_active', 'created_at', 'updated_at']
