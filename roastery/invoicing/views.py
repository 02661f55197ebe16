from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.permissions import INVOICES_MANAGE, INVOICES_VIEW, capability_required
from roastery.core.utils import paginated_response
from roastery.parties.models import Client, Supplier
from . import services
from .filters import PurchaseInvoiceFilter, SalesInvoiceFilter
from .models import PurchaseInvoice, SalesInvoice
from .serializers import (
    InvoiceTermsSerializer, ManualPurchaseInvoiceSerializer, ManualSalesInvoiceSerializer,
    PaymentSerializer, PurchaseInvoiceSerializer, SalesInvoiceSerializer,
)


def _sales_invoices():
    return SalesInvoice.objects.select_related('client', 'sales_order').prefetch_related('items')


def _purchase_invoices():
    return PurchaseInvoice.objects.select_related('supplier', 'purchase_order').prefetch_related('items')


# Sales invoices
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_VIEW, INVOICES_MANAGE)])
def sales_invoice_list_create(request):
    """List sales invoices or create a manual one"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        filterset = SalesInvoiceFilter(request.query_params, queryset=scoped(_sales_invoices(), ctx))
        return paginated_response(request, filterset.qs.order_by('-invoice_date', '-id'), SalesInvoiceSerializer)

    serializer = ManualSalesInvoiceSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    client = get_scoped(Client.objects.all(), ctx, data.pop('client'), 'Client')
    invoice = services.create_manual_sales_invoice(ctx, client=client, **data)
    return Response(SalesInvoiceSerializer(get_scoped(_sales_invoices(), ctx, invoice.pk)).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_VIEW, INVOICES_MANAGE)])
def sales_invoice_detail(request, pk):
    ctx = context_from_request(request)
    if request.method == 'GET':
        return Response(SalesInvoiceSerializer(get_scoped(_sales_invoices(), ctx, pk, 'Invoice')).data)
    services.delete_invoice(ctx, SalesInvoice, pk)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_MANAGE)])
def sales_invoice_payment(request, pk):
    """Record the cumulative paid amount of a sales invoice"""
    ctx = context_from_request(request)
    serializer = PaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    services.record_payment(ctx, SalesInvoice, pk, **serializer.validated_data)
    return Response(SalesInvoiceSerializer(get_scoped(_sales_invoices(), ctx, pk, 'Invoice')).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_MANAGE)])
def sales_order_invoice(request, pk):
    """Invoice a shipped or delivered sales order"""
    ctx = context_from_request(request)
    serializer = InvoiceTermsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    invoice = services.generate_from_sales_order(ctx, pk, **serializer.validated_data)
    return Response(SalesInvoiceSerializer(get_scoped(_sales_invoices(), ctx, invoice.pk)).data,
                    status=status.HTTP_201_CREATED)


# Purchase invoices
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_VIEW, INVOICES_MANAGE)])
def purchase_invoice_list_create(request):
    """List purchase invoices or record a manual supplier bill"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        filterset = PurchaseInvoiceFilter(request.query_params, queryset=scoped(_purchase_invoices(), ctx))
        return paginated_response(request, filterset.qs.order_by('-invoice_date', '-id'), PurchaseInvoiceSerializer)

    serializer = ManualPurchaseInvoiceSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    supplier = get_scoped(Supplier.objects.all(), ctx, data.pop('supplier'), 'Supplier')
    invoice = services.create_manual_purchase_invoice(ctx, supplier=supplier, **data)
    return Response(PurchaseInvoiceSerializer(get_scoped(_purchase_invoices(), ctx, invoice.pk)).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_VIEW, INVOICES_MANAGE)])
def purchase_invoice_detail(request, pk):
    ctx = context_from_request(request)
    if request.method == 'GET':
        return Response(PurchaseInvoiceSerializer(get_scoped(_purchase_invoices(), ctx, pk, 'Invoice')).data)
    services.delete_invoice(ctx, PurchaseInvoice, pk)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_MANAGE)])
def purchase_invoice_payment(request, pk):
    ctx = context_from_request(request)
    serializer = PaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    services.record_payment(ctx, PurchaseInvoice, pk, **serializer.validated_data)
    return Response(PurchaseInvoiceSerializer(get_scoped(_purchase_invoices(), ctx, pk, 'Invoice')).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(INVOICES_MANAGE)])
def purchase_order_invoice(request, pk):
    """Invoice the received quantities of a purchase order"""
    ctx = context_from_request(request)
    serializer = InvoiceTermsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    invoice = services.generate_from_purchase_order(ctx, pk, **serializer.validated_data)
    return Response(PurchaseInvoiceSerializer(get_scoped(_purchase_invoices(), ctx, invoice.pk)).data,
                    status=status.HTTP_201_CREATED)
