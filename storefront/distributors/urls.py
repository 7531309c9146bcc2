from django.urls import path
from .views import (
    distributor_list,
    distributor_csv_template, distributor_csv_validate, distributor_csv_import
)

urlpatterns = [
    path('distributors/', distributor_list, name='distributor-list'),

    # Distributor CSV endpoints
    path('distributors/csv/template/', distributor_csv_template, name='distributor-csv-template'),
    path('distributors/csv/validate/', distributor_csv_validate, name='distributor-csv-validate'),
    path('distributors/csv/import/', distributor_csv_import, name='distributor-csv-import'),
]
