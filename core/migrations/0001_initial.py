from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('co2_saved', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Cumulative kg of CO2 saved through completed swaps.', max_digits=12, verbose_name='CO2 saved')),
                ('waste_reduced', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Cumulative kg of waste kept out of landfill through completed swaps.', max_digits=12, verbose_name='waste reduced')),
                ('swaps_completed', models.PositiveIntegerField(default=0, help_text='Number of swaps this user has completed.', verbose_name='swaps completed')),
                ('rating_average', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Average rating over all reviews received.', max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='rating average')),
                ('rating_count', models.PositiveIntegerField(default=0, help_text='Number of reviews received.', verbose_name='rating count')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email'], name='core_user_email_7ced2a_idx')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(help_text='Title of the item', max_length=100, verbose_name='title')),
                ('description', models.TextField(help_text='Detailed description of the item', max_length=1000, verbose_name='description')),
                ('category', models.CharField(choices=[('clothing', 'Clothing'), ('electronics', 'Electronics'), ('furniture', 'Furniture'), ('books', 'Books'), ('toys', 'Toys'), ('sports', 'Sports'), ('kitchen', 'Kitchen'), ('garden', 'Garden'), ('automotive', 'Automotive'), ('other', 'Other')], help_text='Category of the item', max_length=20, verbose_name='category')),
                ('condition', models.CharField(choices=[('new', 'New'), ('like-new', 'Like New'), ('good', 'Good'), ('fair', 'Fair'), ('poor', 'Poor')], help_text='Condition of the item', max_length=20, verbose_name='condition')),
                ('estimated_value', models.DecimalField(blank=True, decimal_places=2, help_text='Optional estimated value', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Estimated value cannot be negative.')], verbose_name='estimated value')),
                ('is_available', models.BooleanField(default=True, help_text='Whether the item can still be offered in new swaps', verbose_name='is available')),
                ('co2_saved', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='kg of CO2 saved by reusing this item', max_digits=12, verbose_name='CO2 saved')),
                ('waste_reduced', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='kg of waste avoided by reusing this item', max_digits=12, verbose_name='waste reduced')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the item was created', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the item was last updated', verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='User offering this item', on_delete=django.db.models.deletion.CASCADE, related_name='items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'item',
                'verbose_name_plural': 'items',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner'], name='core_item_owner_i_5d4b9c_idx'),
                    models.Index(fields=['is_available'], name='core_item_is_avai_8a1e2f_idx'),
                    models.Index(fields=['category', 'condition'], name='core_item_categor_3f6d7a_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Swap',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', help_text='Current status of the swap', max_length=20, verbose_name='status')),
                ('meetup_location', models.JSONField(blank=True, help_text='Coordinates ([longitude, latitude]) and/or address of the meetup', null=True, validators=[core.validators.validate_meetup_location], verbose_name='meetup location')),
                ('meetup_time', models.DateTimeField(blank=True, help_text='When the exchange takes place', null=True, verbose_name='meetup time')),
                ('co2_saved', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='kg of CO2 saved by this swap', max_digits=12, verbose_name='CO2 saved')),
                ('waste_reduced', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='kg of waste avoided by this swap', max_digits=12, verbose_name='waste reduced')),
                ('completed_at', models.DateTimeField(blank=True, help_text='Timestamp when the swap was completed', null=True, verbose_name='completed at')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the swap was created', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the swap was last updated', verbose_name='updated at')),
                ('initiator', models.ForeignKey(help_text='User proposing the swap', on_delete=django.db.models.deletion.CASCADE, related_name='initiated_swaps', to=settings.AUTH_USER_MODEL)),
                ('initiator_item', models.ForeignKey(help_text='Item offered by the initiator', on_delete=django.db.models.deletion.CASCADE, related_name='offered_in_swaps', to='core.item')),
                ('receiver', models.ForeignKey(help_text='Owner of the requested item', on_delete=django.db.models.deletion.CASCADE, related_name='received_swaps', to=settings.AUTH_USER_MODEL)),
                ('receiver_item', models.ForeignKey(help_text='Item requested from the receiver', on_delete=django.db.models.deletion.CASCADE, related_name='requested_in_swaps', to='core.item')),
            ],
            options={
                'verbose_name': 'swap',
                'verbose_name_plural': 'swaps',
                'ordering': ['-updated_at'],
                'indexes': [
                    models.Index(fields=['initiator'], name='core_swap_initiat_1b2c3d_idx'),
                    models.Index(fields=['receiver'], name='core_swap_receive_4e5f6a_idx'),
                    models.Index(fields=['status'], name='core_swap_status_7b8c9d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PendingOffer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pending_offers', to='core.item')),
                ('swap', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pending_offers', to='core.swap')),
            ],
            options={
                'verbose_name': 'pending offer',
                'verbose_name_plural': 'pending offers',
                'constraints': [
                    models.UniqueConstraint(fields=('item', 'swap'), name='unique_pending_offer_per_item_swap'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('direction', models.CharField(choices=[('initiator_to_receiver', 'Initiator reviewing receiver'), ('receiver_to_initiator', 'Receiver reviewing initiator')], max_length=30, verbose_name='direction')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(help_text='Written feedback about the swap', max_length=500, verbose_name='comment')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the review was created', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the review was last updated', verbose_name='updated at')),
                ('reviewee', models.ForeignKey(help_text='User receiving the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_received', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(help_text='User writing the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_given', to=settings.AUTH_USER_MODEL)),
                ('swap', models.ForeignKey(help_text='Swap being reviewed', on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='core.swap')),
            ],
            options={
                'verbose_name': 'review',
                'verbose_name_plural': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['reviewee', 'created_at'], name='core_review_reviewe_2a3b4c_idx'),
                    models.Index(fields=['swap'], name='core_review_swap_id_5d6e7f_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('swap', 'reviewer'), name='unique_review_per_swap_reviewer'),
                    models.UniqueConstraint(fields=('swap', 'direction'), name='unique_review_per_swap_direction'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('swap_request', 'Swap request'), ('swap_accepted', 'Swap accepted'), ('swap_rejected', 'Swap rejected'), ('swap_completed', 'Swap completed'), ('swap_cancelled', 'Swap cancelled'), ('review', 'Review'), ('system', 'System')], max_length=30, verbose_name='kind')),
                ('title', models.CharField(max_length=200, verbose_name='title')),
                ('body', models.TextField(verbose_name='body')),
                ('is_read', models.BooleanField(default=False, verbose_name='is read')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
                ('related_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.item')),
                ('related_swap', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.swap')),
                ('sender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='notifications_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'notification',
                'verbose_name_plural': 'notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'created_at'], name='core_notifi_recipie_8f9a0b_idx'),
                    models.Index(fields=['is_read'], name='core_notifi_is_read_1c2d3e_idx'),
                ],
            },
        ),
    ]
