from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import openpyxl
from openpyxl.styles import Font, PatternFill
from openpyxl.utils.exceptions import InvalidFileException
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.http import HttpResponse
from django.utils import timezone

from .activity import log_activity
from .models import ActivityLog, Lead, Project, Task, TaskNote

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill(start_color='1F4E8C', end_color='1F4E8C', fill_type='solid')

LEAD_TEMPLATE_COLUMNS = [
    'Name *',
    'Phone *',
    'Email',
    'Address',
    'Requirement Type (villa/apartment/house/plot)',
    'BHK (1/2/3/4/5+)',
    'Budget Min',
    'Budget Max',
    'Preferred Location',
    'Source (call/walk_in/website/referral)',
    'Status (interested/not_interested/pending/reminder)',
    'Follow-up Date (YYYY-MM-DD)',
    'Description',
]

LEAD_SAMPLE_ROWS = [
    ['John Doe', '9876543210', 'john@example.com', '123 Main St', 'apartment', '3', 5000000, 8000000,
     'Downtown', 'website', 'interested', '', 'Looking for 3BHK apartment'],
    ['Jane Smith', '9123456789', 'jane@example.com', '456 Oak Ave', 'villa', '4', 10000000, 15000000,
     'Suburbs', 'referral', 'pending', '2024-02-15', 'Family looking for villa'],
]

TASK_TEMPLATE_COLUMNS = [
    'Lead Name *',
    'Lead Phone *',
    'Lead Email',
    'Requirement Type (villa/apartment/house/plot)',
    'BHK (1/2/3/4/5+)',
    'Project ID *',
    'Status (visit/family_visit/pending/completed/rejected)',
    'Next Action Date (YYYY-MM-DD)',
    'Notes',
]

TASK_SAMPLE_ROWS = [
    ['John Doe', '9876543210', 'john@example.com', 'apartment', '3', 1, 'visit', '2024-02-20', 'Site visit scheduled'],
    ['Jane Smith', '9123456789', 'jane@example.com', 'villa', '4', 1, 'pending', '', 'Awaiting confirmation'],
]


class SpreadsheetError(ValueError):
    """The uploaded file could not be read as a workbook."""


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {'imported': self.imported, 'skipped': self.skipped, 'errors': self.errors}


def _text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _choice(value, choices, default: str) -> str:
    normalized = _text(value).lower().replace(' ', '_').replace('-', '_')
    return normalized if normalized in choices else default


def _date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value)
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _amount(value) -> Decimal:
    try:
        return Decimal(int(float(_text(value) or 0)))
    except (InvalidOperation, ValueError, OverflowError):
        return Decimal('0')


def _email(value) -> str:
    email = _text(value)
    if not email:
        return ''
    try:
        validate_email(email)
    except ValidationError:
        return ''
    return email


def _write_sheet(title: str, headers: List[str], rows) -> openpyxl.Workbook:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = title
    for col, header in enumerate(headers, start=1):
        cell = sheet.cell(row=1, column=col, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
    for row_num, row in enumerate(rows, start=2):
        for col, value in enumerate(row, start=1):
            sheet.cell(row=row_num, column=col, value=value)
    for column_cells in sheet.columns:
        longest = max(len(_text(cell.value)) for cell in column_cells)
        sheet.column_dimensions[column_cells[0].column_letter].width = min(longest + 2, 50)
    return workbook


def _read_rows(uploaded_file):
    try:
        workbook = openpyxl.load_workbook(uploaded_file, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        logger.warning('Rejected unreadable spreadsheet upload: %s', exc)
        raise SpreadsheetError('Could not read the spreadsheet. Upload an .xlsx file.') from exc
    try:
        return list(workbook.worksheets[0].iter_rows(min_row=2, values_only=True))
    finally:
        workbook.close()


def _cell(row, index):
    return row[index] if index < len(row) else None


def lead_template() -> openpyxl.Workbook:
    return _write_sheet('Leads Template', LEAD_TEMPLATE_COLUMNS, LEAD_SAMPLE_ROWS)


def task_template() -> openpyxl.Workbook:
    return _write_sheet('Tasks Template', TASK_TEMPLATE_COLUMNS, TASK_SAMPLE_ROWS)


def export_leads(leads, *, mask_contacts: bool = False) -> openpyxl.Workbook:
    headers = [
        'ID', 'Name', 'Phone', 'Email', 'Requirement Type', 'BHK', 'Budget Min', 'Budget Max',
        'Preferred Location', 'Source', 'Status', 'Follow-up Date', 'Project', 'Created By', 'Created At',
    ]
    rows = []
    for lead in leads:
        rows.append([
            lead.pk,
            lead.name,
            '' if mask_contacts else lead.phone,
            '' if mask_contacts else lead.email,
            lead.get_requirement_type_display(),
            lead.bhk_requirement,
            float(lead.budget_min),
            float(lead.budget_max),
            lead.preferred_location,
            lead.get_source_display(),
            lead.get_status_display(),
            lead.follow_up_date.isoformat() if lead.follow_up_date else '',
            lead.assigned_project.name if lead.assigned_project_id else '',
            lead.created_by.display_name if lead.created_by_id else '',
            timezone.localtime(lead.created_at).strftime('%Y-%m-%d %H:%M'),
        ])
    return _write_sheet('Leads', headers, rows)


def export_tasks(tasks, *, mask_contacts: bool = False) -> openpyxl.Workbook:
    headers = [
        'ID', 'Lead Name', 'Lead Phone', 'Status', 'Next Action Date', 'Assigned To', 'Project', 'Created At',
    ]
    rows = []
    for task in tasks:
        lead = task.lead
        rows.append([
            task.pk,
            lead.name if lead else '',
            '' if mask_contacts or not lead else lead.phone,
            task.get_status_display(),
            task.next_action_date.isoformat() if task.next_action_date else '',
            task.assigned_to.display_name if task.assigned_to_id else '',
            task.assigned_project.name if task.assigned_project_id else '',
            timezone.localtime(task.created_at).strftime('%Y-%m-%d %H:%M'),
        ])
    return _write_sheet('Tasks', headers, rows)


def workbook_response(workbook: openpyxl.Workbook, filename: str) -> HttpResponse:
    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    workbook.save(response)
    return response


@transaction.atomic
def import_leads(uploaded_file, *, actor) -> ImportResult:
    """Create one lead per row; rows without a name or phone are skipped."""
    result = ImportResult()
    for row_num, row in enumerate(_read_rows(uploaded_file), start=2):
        if not row or not any(value not in (None, '') for value in row):
            continue
        name, phone = _text(_cell(row, 0)), _text(_cell(row, 1))
        if not name or not phone:
            result.skipped += 1
            result.errors.append(f"Row {row_num}: name and phone are required.")
            continue
        Lead.objects.create(
            name=name,
            phone=phone,
            email=_email(_cell(row, 2)),
            address=_text(_cell(row, 3)),
            requirement_type=_choice(_cell(row, 4), Lead.RequirementType.values, Lead.RequirementType.APARTMENT),
            bhk_requirement=_choice(_cell(row, 5), Lead.BHK.values, Lead.BHK.TWO),
            budget_min=_amount(_cell(row, 6)),
            budget_max=_amount(_cell(row, 7)),
            preferred_location=_text(_cell(row, 8)),
            source=_choice(_cell(row, 9), Lead.Source.values, Lead.Source.WEBSITE),
            status=_choice(_cell(row, 10), Lead.Status.values, Lead.Status.PENDING),
            follow_up_date=_date(_cell(row, 11)),
            description=_text(_cell(row, 12)),
            created_by=actor,
        )
        result.imported += 1
    if result.imported:
        log_activity(
            actor=actor,
            module='leads',
            action=ActivityLog.Action.CREATED,
            details=f"Imported {result.imported} leads from spreadsheet ({result.skipped} skipped)",
        )
    return result


@transaction.atomic
def import_tasks(uploaded_file, *, actor) -> ImportResult:
    """Create a lead and a task per row, assigned to the importing user."""
    result = ImportResult()
    projects = {str(pk): pk for pk in Project.objects.values_list('pk', flat=True)}
    for row_num, row in enumerate(_read_rows(uploaded_file), start=2):
        if not row or not any(value not in (None, '') for value in row):
            continue
        name, phone = _text(_cell(row, 0)), _text(_cell(row, 1))
        project_id = projects.get(_text(_cell(row, 5)))
        if not name or not phone or project_id is None:
            result.skipped += 1
            result.errors.append(f"Row {row_num}: lead name, phone and a valid project ID are required.")
            continue
        lead = Lead.objects.create(
            name=name,
            phone=phone,
            email=_email(_cell(row, 2)),
            requirement_type=_choice(_cell(row, 3), Lead.RequirementType.values, Lead.RequirementType.APARTMENT),
            bhk_requirement=_choice(_cell(row, 4), Lead.BHK.values, Lead.BHK.TWO),
            created_by=actor,
            assigned_project_id=project_id,
        )
        task = Task.objects.create(
            lead=lead,
            status=_choice(_cell(row, 6), Task.Status.values, Task.Status.PENDING),
            next_action_date=_date(_cell(row, 7)),
            assigned_to=actor,
            assigned_project_id=project_id,
        )
        note = _text(_cell(row, 8))
        if note:
            TaskNote.objects.create(task=task, author=actor, content=note)
        result.imported += 1
    if result.imported:
        log_activity(
            actor=actor,
            module='tasks',
            action=ActivityLog.Action.CREATED,
            details=f"Imported {result.imported} tasks from spreadsheet ({result.skipped} skipped)",
        )
    return result
