from decimal import Decimal
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Country',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True, verbose_name='Country')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Destination country',
                'verbose_name_plural': 'Destination countries',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='SpecialOffer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(max_length=50, verbose_name='Country')),
                ('weight_description', models.CharField(max_length=100, verbose_name="Weight (e.g. 'Up to 25kg')")),
                ('rate', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='Rate (LKR)')),
                ('enabled', models.BooleanField(default=True, verbose_name='Enabled')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Special offer',
                'verbose_name_plural': 'Special offers',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='WeightBand',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('weight_label', models.CharField(max_length=50, verbose_name='Label')),
                ('weight_value', models.DecimalField(decimal_places=3, max_digits=8, validators=[django.core.validators.MinValueValidator(Decimal('0.001'))], verbose_name='Upper weight (kg)')),
                ('nd_economy_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Parcel economy (LKR)')),
                ('is_nd_economy_enabled', models.BooleanField(default=True, verbose_name='Parcel economy offered')),
                ('nd_express_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Parcel express (LKR)')),
                ('is_nd_express_enabled', models.BooleanField(default=True, verbose_name='Parcel express offered')),
                ('doc_economy_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Document economy (LKR)')),
                ('is_doc_economy_enabled', models.BooleanField(default=True, verbose_name='Document economy offered')),
                ('doc_express_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Document express (LKR)')),
                ('is_doc_express_enabled', models.BooleanField(default=True, verbose_name='Document express offered')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('country', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='weight_bands', to='logistics.country', verbose_name='Country')),
            ],
            options={
                'verbose_name': 'Weight band',
                'verbose_name_plural': 'Weight bands',
                'ordering': ['country', 'weight_value'],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.CharField(editable=False, max_length=10, primary_key=True, serialize=False)),
                ('shipment_type', models.CharField(choices=[('parcel', 'Parcel (non-document)'), ('document', 'Document')], max_length=10)),
                ('service_type', models.CharField(choices=[('economy', 'Economy'), ('express', 'Express')], max_length=10)),
                ('location_type', models.CharField(choices=[('pickup', 'Pickup from sender'), ('dropoff_katunayake', 'Drop-off at Katunayake')], max_length=20)),
                ('receiver_country', models.CharField(max_length=50, verbose_name='Destination')),
                ('approx_weight', models.DecimalField(decimal_places=3, max_digits=8, verbose_name='Weight (kg)')),
                ('length', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True, verbose_name='Length (cm)')),
                ('width', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True, verbose_name='Width (cm)')),
                ('height', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True, verbose_name='Height (cm)')),
                ('approx_value', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Value of goods (USD)')),
                ('receiver_full_name', models.CharField(max_length=100)),
                ('receiver_email', models.EmailField(blank=True, max_length=100)),
                ('receiver_address', models.CharField(max_length=200)),
                ('receiver_door_code', models.CharField(blank=True, max_length=50)),
                ('receiver_zip_code', models.CharField(max_length=20)),
                ('receiver_city', models.CharField(max_length=50)),
                ('receiver_contact_no', models.CharField(max_length=20)),
                ('receiver_whatsapp_no', models.CharField(blank=True, max_length=20)),
                ('sender_full_name', models.CharField(max_length=100)),
                ('sender_address', models.CharField(max_length=200)),
                ('sender_contact_no', models.CharField(max_length=20)),
                ('sender_whatsapp_no', models.CharField(blank=True, max_length=20)),
                ('package_contents', models.CharField(max_length=200)),
                ('courier_purpose', models.CharField(choices=[('gift', 'Gift'), ('commercial', 'Commercial'), ('personal', 'Personal'), ('sample', 'Sample'), ('return_for_repair', 'Return for repair'), ('return_after_repair', 'Return after repair'), ('custom', 'Custom')], max_length=30)),
                ('custom_purpose', models.CharField(blank=True, max_length=100)),
                ('package_description', models.CharField(blank=True, max_length=255)),
                ('chargeable_weight', models.DecimalField(decimal_places=3, max_digits=10, verbose_name='Chargeable weight (kg)')),
                ('estimated_cost_lkr', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Estimated cost (LKR)')),
                ('rate_band_label', models.CharField(blank=True, max_length=50, verbose_name='Rate band')),
                ('status', models.CharField(choices=[('Pending', 'Pending'), ('In Transit', 'In Transit'), ('Delivered', 'Delivered'), ('Cancelled', 'Cancelled')], default='Pending', max_length=20, verbose_name='Order status')),
                ('payment_status', models.CharField(choices=[('Pending', 'Pending'), ('Paid', 'Paid'), ('Refunded', 'Refunded')], default='Pending', max_length=20, verbose_name='Payment status')),
                ('nic_verification_status', models.CharField(blank=True, max_length=20, verbose_name='NIC status at booking')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to=settings.AUTH_USER_MODEL, verbose_name='Customer')),
            ],
            options={
                'verbose_name': 'Booking',
                'verbose_name_plural': 'Bookings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'created_at'], name='logistics_bk_status_idx'),
                    models.Index(fields=['user', 'created_at'], name='logistics_bk_user_idx'),
                ],
            },
        ),
    ]
