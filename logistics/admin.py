"""
Django Admin configuration for LOGISTICS app.
"""

from django.contrib import admin
from .models import Country, WeightBand, SpecialOffer, Booking, OrderStatus


class WeightBandInline(admin.TabularInline):
    model = WeightBand
    extra = 1
    ordering = ('weight_value',)
    fields = (
        'weight_label', 'weight_value',
        'nd_economy_price', 'is_nd_economy_enabled',
        'nd_express_price', 'is_nd_express_enabled',
        'doc_economy_price', 'is_doc_economy_enabled',
        'doc_express_price', 'is_doc_express_enabled',
    )


@admin.register(Country)
class CountryAdmin(admin.ModelAdmin):
    """Destination with its weight bands edited inline."""

    list_display = ('name', 'band_count', 'created_at')
    search_fields = ('name',)
    ordering = ('name',)
    inlines = [WeightBandInline]

    def band_count(self, obj):
        return obj.weight_bands.count()
    band_count.short_description = "Bands"


@admin.register(SpecialOffer)
class SpecialOfferAdmin(admin.ModelAdmin):
    list_display = ('country', 'weight_description', 'rate', 'enabled', 'updated_at')
    list_filter = ('enabled',)
    search_fields = ('country', 'weight_description')
    list_editable = ('enabled',)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Admin for Booking with full details."""

    list_display = (
        'id',
        'status',
        'payment_status',
        'sender_full_name',
        'receiver_country',
        'chargeable_weight',
        'estimated_cost_lkr',
        'nic_verification_status',
        'created_at'
    )
    list_filter = ('status', 'payment_status', 'shipment_type', 'service_type', 'receiver_country')
    search_fields = ('id', 'sender_full_name', 'receiver_full_name', 'user__email')
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'

    # payment_status is owned by the PayHere webhook
    readonly_fields = (
        'id',
        'user',
        'chargeable_weight',
        'estimated_cost_lkr',
        'rate_band_label',
        'payment_status',
        'nic_verification_status',
        'created_at',
        'updated_at'
    )

    fieldsets = (
        ('Identification', {
            'fields': ('id', 'user', 'status', 'payment_status', 'nic_verification_status')
        }),
        ('Shipment', {
            'fields': (
                'shipment_type', 'service_type', 'location_type', 'receiver_country',
                'approx_weight', 'length', 'width', 'height', 'approx_value'
            )
        }),
        ('Receiver', {
            'fields': (
                'receiver_full_name', 'receiver_email', 'receiver_address', 'receiver_door_code',
                'receiver_zip_code', 'receiver_city', 'receiver_contact_no', 'receiver_whatsapp_no'
            )
        }),
        ('Sender', {
            'fields': ('sender_full_name', 'sender_address', 'sender_contact_no', 'sender_whatsapp_no')
        }),
        ('Package', {
            'fields': ('package_contents', 'courier_purpose', 'custom_purpose', 'package_description')
        }),
        ('Pricing', {
            'fields': ('chargeable_weight', 'rate_band_label', 'estimated_cost_lkr')
        }),
        ('History', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['mark_in_transit', 'mark_delivered', 'mark_cancelled', 'export_bookings_csv']

    def _set_status(self, request, queryset, new_status):
        updated = 0
        for booking in queryset.exclude(status=new_status):
            booking.status = new_status
            booking.save(update_fields=['status', 'updated_at'])
            updated += 1
        self.message_user(request, f"{updated} booking(s) marked {new_status}.")

    @admin.action(description="Mark as In Transit")
    def mark_in_transit(self, request, queryset):
        self._set_status(request, queryset, OrderStatus.IN_TRANSIT)

    @admin.action(description="Mark as Delivered")
    def mark_delivered(self, request, queryset):
        self._set_status(request, queryset, OrderStatus.DELIVERED)

    @admin.action(description="Mark as Cancelled")
    def mark_cancelled(self, request, queryset):
        self._set_status(request, queryset, OrderStatus.CANCELLED)

    @admin.action(description="Export to CSV")
    def export_bookings_csv(self, request, queryset):
        import csv
        from django.http import HttpResponse

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="flycargo_bookings.csv"'
        response.write('\ufeff')

        writer = csv.writer(response)
        writer.writerow([
            'ID', 'Status', 'Payment', 'Sender', 'Receiver', 'Country',
            'Weight (kg)', 'Chargeable (kg)', 'Estimate (LKR)', 'Created'
        ])

        for b in queryset:
            writer.writerow([
                b.id,
                b.get_status_display(),
                b.get_payment_status_display(),
                b.sender_full_name,
                b.receiver_full_name,
                b.receiver_country,
                b.approx_weight,
                b.chargeable_weight,
                b.estimated_cost_lkr if b.estimated_cost_lkr is not None else '',
                b.created_at.strftime('%d/%m/%Y %H:%M') if b.created_at else '',
            ])
        return response
