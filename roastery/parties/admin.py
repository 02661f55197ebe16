from django.contrib import admin
from .models import Supplier, Client


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'tenant', 'contact_person', 'country', 'is_active']
    list_filter = ['is_active', 'country']
    search_fields = ['name', 'contact_person', 'email']


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'tenant', 'contact_person', 'country', 'is_active']
    list_filter = ['is_active', 'country']
    search_fields = ['name', 'contact_person', 'email']
