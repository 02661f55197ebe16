from django.contrib import admin
from .models import SalesInvoice, SalesInvoiceItem, PurchaseInvoice, PurchaseInvoiceItem


class SalesInvoiceItemInline(admin.TabularInline):
    model = SalesInvoiceItem
    extra = 0


class PurchaseInvoiceItemInline(admin.TabularInline):
    model = PurchaseInvoiceItem
    extra = 0


@admin.register(SalesInvoice)
class SalesInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'tenant', 'client', 'invoice_date', 'due_date', 'total_amount',
                    'paid_amount', 'payment_status']
    list_filter = ['payment_status', 'tenant']
    search_fields = ['invoice_number', 'client__name']
    inlines = [SalesInvoiceItemInline]


@admin.register(PurchaseInvoice)
class PurchaseInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'tenant', 'supplier', 'invoice_date', 'due_date', 'total_amount',
                    'paid_amount', 'payment_status']
    list_filter = ['payment_status', 'tenant']
    search_fields = ['invoice_number', 'supplier__name']
    inlines = [PurchaseInvoiceItemInline]
