"""
Category lookup used by the CSV importer.

Maps normalized "silo|subcategory|type" keys to catalog ids. The lookup is
built from three small tables, cached and invalidated whenever one of them
changes.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from storefront.core.csvtools import normalize_key

from .models import ProductType, Silo, Subcategory
from .product_csv.template import CATEGORY_FIELD_SETS, parse_base_category_slug

logger = logging.getLogger(__name__)

CATEGORY_LOOKUP_CACHE_KEY = 'catalog:category_lookup'


@dataclass(frozen=True)
class CategoryInfo:
    silo_id: int
    silo_slug: str
    subcategory_id: int
    product_type_id: int = None


def _silo_keys(silo):
    keys = [normalize_key(silo.name), normalize_key(silo.slug)]
    for value in (silo.name, silo.slug):
        base = parse_base_category_slug(value)
        if base:
            keys.append(normalize_key(base))
    # Preserve order, drop duplicates and blanks
    return [k for i, k in enumerate(keys) if k and k not in keys[:i]]


def build_category_lookup():
    """Build the key -> CategoryInfo map from silos, subcategories and product types"""
    lookup = {}
    subcategories_by_silo = {}
    for sub in Subcategory.objects.order_by('sort_order', 'id'):
        subcategories_by_silo.setdefault(sub.silo_id, []).append(sub)
    types_by_subcategory = {}
    for product_type in ProductType.objects.order_by('id'):
        types_by_subcategory.setdefault(product_type.subcategory_id, []).append(product_type)

    for silo in Silo.objects.order_by('sort_order', 'id'):
        silo_keys = _silo_keys(silo)
        for sub in subcategories_by_silo.get(silo.id, []):
            sub_key = normalize_key(sub.name)
            info = CategoryInfo(silo_id=silo.id, silo_slug=silo.slug, subcategory_id=sub.id)
            for silo_key in silo_keys:
                lookup.setdefault(f'{silo_key}|{sub_key}', info)
                # Silo-only fallback points at the first subcategory
                lookup.setdefault(silo_key, info)

            for product_type in types_by_subcategory.get(sub.id, []):
                type_info = CategoryInfo(
                    silo_id=silo.id,
                    silo_slug=silo.slug,
                    subcategory_id=sub.id,
                    product_type_id=product_type.id,
                )
                for silo_key in silo_keys:
                    lookup.setdefault(f'{silo_key}|{sub_key}|{normalize_key(product_type.name)}', type_info)

    return lookup


def get_category_lookup():
    lookup = cache.get(CATEGORY_LOOKUP_CACHE_KEY)
    if lookup is None:
        lookup = build_category_lookup()
        cache.set(CATEGORY_LOOKUP_CACHE_KEY, lookup, getattr(settings, 'CATEGORY_CACHE_TTL', 600))
        logger.debug(f"Category lookup rebuilt with {len(lookup)} keys")
    return lookup


def invalidate_category_lookup():
    cache.delete(CATEGORY_LOOKUP_CACHE_KEY)


def resolve_category(data, lookup, index=1):
    """Resolve Categoria_n / Subcategoria_n / Tipo_producto_n to a CategoryInfo"""
    cat_field, sub_field, type_field, _ = CATEGORY_FIELD_SETS[index - 1]
    raw_category = data.get(cat_field) or ''
    category = normalize_key(raw_category)
    if not category:
        return None
    subcategory = normalize_key(data.get(sub_field) or '')
    product_type = normalize_key(data.get(type_field) or '')

    category_keys = [category]
    base = parse_base_category_slug(raw_category)
    if base and normalize_key(base) not in category_keys:
        category_keys.append(normalize_key(base))

    for key in category_keys:
        if product_type:
            info = lookup.get(f'{key}|{subcategory}|{product_type}')
            if info:
                return info
        if subcategory:
            info = lookup.get(f'{key}|{subcategory}')
            if info:
                return info
        info = lookup.get(key)
        if info:
            return info
    return None


def resolve_all_categories(data, lookup):
    infos = []
    for index in range(1, len(CATEGORY_FIELD_SETS) + 1):
        info = resolve_category(data, lookup, index)
        if info:
            infos.append(info)
    return infos


@receiver([post_save, post_delete], sender=Silo)
@receiver([post_save, post_delete], sender=Subcategory)
@receiver([post_save, post_delete], sender=ProductType)
def invalidate_on_category_change(sender, **kwargs):
    logger.debug(f"{sender.__name__} changed, invalidating category lookup")
    invalidate_category_lookup()
