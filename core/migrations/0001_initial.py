import core.models
import django.core.validators
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=254, unique=True, verbose_name='Email')),
                ('display_name', models.CharField(blank=True, max_length=150, verbose_name='Display name')),
                ('phone', models.CharField(blank=True, max_length=16, validators=[django.core.validators.RegexValidator(message='Format: +94XXXXXXXXX (country code included)', regex='^\\+?[0-9]{9,15}$')], verbose_name='Phone')),
                ('address', models.CharField(blank=True, max_length=255, verbose_name='Address')),
                ('is_profile_complete', models.BooleanField(default=False, verbose_name='Profile complete')),
                ('role', models.CharField(choices=[('user', 'Customer'), ('admin', 'Administrator'), ('developer', 'Developer')], default='user', max_length=20, verbose_name='Role')),
                ('nic_number', models.CharField(blank=True, max_length=20, verbose_name='NIC number')),
                ('nic_front_image', models.ImageField(blank=True, null=True, upload_to=core.models.nic_upload_to, verbose_name='NIC front')),
                ('nic_back_image', models.ImageField(blank=True, null=True, upload_to=core.models.nic_upload_to, verbose_name='NIC back')),
                ('nic_verification_status', models.CharField(choices=[('none', 'Not submitted'), ('pending', 'Pending review'), ('verified', 'Verified'), ('rejected', 'Rejected')], db_index=True, default='none', max_length=20, verbose_name='NIC status')),
                ('nic_submitted_at', models.DateTimeField(blank=True, null=True)),
                ('nic_reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('date_joined', models.DateTimeField(auto_now_add=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'ordering': ['-date_joined'],
            },
            managers=[
                ('objects', core.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('notification_type', models.CharField(choices=[('new_booking', 'New booking'), ('nic_submission', 'NIC submitted'), ('payment_received', 'Payment received')], max_length=30, verbose_name='Type')),
                ('message', models.CharField(max_length=255, verbose_name='Message')),
                ('link', models.CharField(blank=True, max_length=255, verbose_name='Link')),
                ('is_read', models.BooleanField(default=False, verbose_name='Read')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['is_read', 'created_at'], name='core_notif_read_created_idx')],
            },
        ),
    ]
