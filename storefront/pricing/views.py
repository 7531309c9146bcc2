from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from storefront.catalog.models import Product
from storefront.distributors.models import Distributor
from .utils import calculate_product_pricing


def get_request_distributor(request):
    """Active distributor of the authenticated user, if any"""
    user = request.user
    if not user or not user.is_authenticated:
        return None
    return Distributor.objects.filter(user=user, is_active=True).first()


@api_view(['GET'])
@permission_classes([AllowAny])
def product_pricing(request, pk):
    """Prices of a product as seen by the current user"""
    product = get_object_or_404(Product, pk=pk, is_active=True)
    distributor = get_request_distributor(request)
    pricing = calculate_product_pricing(product, distributor)
    return Response({
        'product_id': product.id,
        'is_distributor': distributor is not None,
        **pricing.to_dict(),
    })
