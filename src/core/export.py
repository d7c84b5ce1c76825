"""CSV export utilities."""
import csv

from django.http import HttpResponse


def queryset_to_csv_response(queryset, columns, filename):
    """Convert a queryset to a CSV HttpResponse.

    ``columns`` is a list of ``(field_or_callable, header)`` pairs: a string
    is read with ``getattr(obj, field)``, a callable is called with the object.
    Decimals are written with ``str`` so no precision is lost.
    """
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}.csv"'
    # UTF-8 BOM so spreadsheet tools detect the encoding
    response.write("\ufeff")

    writer = csv.writer(response, delimiter=";")
    writer.writerow([header for _, header in columns])

    for obj in queryset.iterator():
        row = []
        for field, _ in columns:
            value = field(obj) if callable(field) else getattr(obj, field, "")
            row.append("" if value is None else str(value))
        writer.writerow(row)

    return response
