"""
Apply parsed distributor rows: create distributor accounts (inviting new users
by email) and update existing distributors matched on company_rif.
"""
import logging
from dataclasses import asdict, dataclass, field

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from storefront.core.utils import create_audit_log

from ..models import Distributor, DistributorCsvImport
from .template import parse_boolean, parse_numeric, quantize_numeric

logger = logging.getLogger(__name__)

User = get_user_model()

IMPORT_MODES = ('update', 'add_only')

PROFILE_FIELDS = ['full_name', 'phone', 'document_type', 'document_number']


class DistributorImportError(Exception):
    pass


@dataclass
class DistributorImportResult:
    import_id: int
    created: int = 0
    updated: int = 0
    skipped: int = 0
    invited: int = 0
    errors: list = field(default_factory=list)

    @property
    def success(self):
        return not self.errors

    def to_dict(self):
        data = asdict(self)
        data['success'] = self.success
        return data


def _decimal_or_zero(value, name):
    number = quantize_numeric(parse_numeric(value), name)
    return number if number is not None else 0


def _text(value):
    value = (value or '').strip()
    return value or None


def send_invitation(user):
    """Email a password-set link to a newly created distributor user"""
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    link = f"{settings.SITE_URL.rstrip('/')}/auth/set-password/{uid}/{token}/"
    name = user.full_name or user.email
    send_mail(
        subject='Invitación al portal de distribuidores',
        message=(
            f"Hola {name},\n\n"
            f"Se ha creado tu cuenta de distribuidor. Para activarla define tu contraseña en:\n{link}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )


def _apply_profile(user, data, only_non_empty):
    for name in PROFILE_FIELDS:
        value = (data.get(name) or '').strip()
        if value or not only_non_empty:
            setattr(user, name, value or ('' if name != 'phone' else None))


def _create_distributor(data):
    email = data['email'].strip().lower()
    invited = False

    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        user = User.objects.create_user(username=email, email=email, password=None)
        invited = True
    elif Distributor.objects.filter(user=user).exists():
        raise DistributorImportError(f'El usuario {email} ya está asociado a otro distribuidor')

    _apply_profile(user, data, only_non_empty=False)
    user.role = 'distributor'
    user.save()

    distributor = Distributor.objects.create(
        user=user,
        company_rif=data['company_rif'].strip(),
        company_name=data['company_name'].strip(),
        business_type=_text(data.get('business_type')),
        discount_percentage=_decimal_or_zero(data.get('discount_percentage'), 'discount_percentage'),
        credit_limit=_decimal_or_zero(data.get('credit_limit'), 'credit_limit'),
        is_active=parse_boolean(data.get('is_active')),
    )

    if invited:
        send_invitation(user)
    return distributor, invited


def _update_distributor(data, diff):
    distributor = Distributor.objects.select_related('user').filter(company_rif=data['company_rif'].strip()).first()
    if distributor is None:
        raise DistributorImportError('Distribuidor no encontrado para actualizar')

    distributor.company_name = data['company_name'].strip()
    distributor.business_type = _text(data.get('business_type'))
    distributor.discount_percentage = _decimal_or_zero(data.get('discount_percentage'), 'discount_percentage')
    distributor.credit_limit = _decimal_or_zero(data.get('credit_limit'), 'credit_limit')
    distributor.is_active = parse_boolean(data.get('is_active'))
    distributor.save()

    user = distributor.user
    _apply_profile(user, data, only_non_empty=True)
    user.save()


def import_distributors(distributors, diffs, mode, user, filename, request=None):
    """Create and update distributors according to their diffs"""
    if mode not in IMPORT_MODES:
        raise ValueError(f"Invalid import mode: {mode}")

    csv_import = DistributorCsvImport.objects.create(
        filename=filename,
        total_rows=len(distributors),
        status='processing',
        import_mode=mode,
        imported_by=user,
    )
    result = DistributorImportResult(import_id=csv_import.id)
    diffs_by_rif = {d.company_rif: d for d in diffs}

    for distributor in distributors:
        diff = diffs_by_rif.get(distributor.company_rif)
        if not distributor.is_valid or diff is None:
            result.skipped += 1
            continue

        try:
            with transaction.atomic():
                if diff.change_type == 'create':
                    created, invited = _create_distributor(distributor.data)
                    if invited:
                        result.invited += 1
                        create_audit_log(
                            request=request,
                            user=user,
                            action='distributor_invite',
                            model_name='User',
                            object_id=created.user_id,
                            object_name=created.user.email,
                            object_reference=created.company_rif,
                        )
                    result.created += 1
                elif diff.change_type == 'update' and mode != 'add_only':
                    _update_distributor(distributor.data, diff)
                    result.updated += 1
                else:
                    result.skipped += 1
        except Exception as e:
            logger.error(
                f"Distributor import {csv_import.id}: row {distributor.row} ({distributor.company_rif}) failed: {str(e)}",
                exc_info=True,
            )
            result.errors.append({
                'row': distributor.row,
                'company_rif': distributor.company_rif,
                'error': str(e) or 'Error desconocido',
            })

    csv_import.rows_created = result.created
    csv_import.rows_updated = result.updated
    csv_import.rows_skipped = result.skipped
    csv_import.rows_invited = result.invited
    csv_import.rows_error = len(result.errors)
    csv_import.errors = result.errors or None
    csv_import.status = 'completed' if result.success else 'completed_with_errors'
    csv_import.completed_at = timezone.now()
    csv_import.save()

    logger.info(
        f"Distributor import {csv_import.id} ({filename}, mode={mode}): created={result.created} "
        f"updated={result.updated} invited={result.invited} skipped={result.skipped} errors={len(result.errors)}"
    )
    create_audit_log(
        request=request,
        user=user,
        action='csv_import',
        model_name='DistributorCsvImport',
        object_id=csv_import.id,
        object_name=filename,
        changes={
            'mode': mode,
            'created': result.created,
            'updated': result.updated,
            'invited': result.invited,
            'skipped': result.skipped,
            'errors': len(result.errors),
        },
    )
    return result


def distributor_to_row(distributor):
    user = distributor.user
    return {
        'company_rif': distributor.company_rif,
        'company_name': distributor.company_name,
        'business_type': distributor.business_type or '',
        'email': user.email or '',
        'full_name': user.full_name or '',
        'phone': user.phone or '',
        'document_type': user.document_type or '',
        'document_number': user.document_number or '',
        'discount_percentage': str(distributor.discount_percentage),
        'credit_limit': str(distributor.credit_limit),
        'is_active': 'SI' if distributor.is_active else 'NO',
    }


def get_existing_distributors_map():
    return {
        d.company_rif: {'id': d.id, 'user_id': d.user_id, 'data': distributor_to_row(d)}
        for d in Distributor.objects.select_related('user')
    }
