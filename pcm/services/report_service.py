"""
Maintenance report export.

Generates the tenant maintenance report as PDF (ReportLab) and the
equipment health table as CSV, both from an already loaded snapshot.
"""

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from pcm.models import Company
from pcm.services import metrics_service
from pcm.services.metrics_service import DEFAULT_THRESHOLDS, EquipmentHealth, MetricsThresholds

BRAND_COLOR = '#1f4e79'

HEALTH_CSV_COLUMNS = [
    'equipment_id', 'equipment_name', 'location', 'status', 'health_score',
    'failure_count', 'mtbf_days', 'days_since_maintenance',
    'last_maintenance', 'next_maintenance',
]


@dataclass
class ReportConfig:
    """Configuration for report generation"""
    title: str
    subtitle: str = ""
    author: str = "PCM Maintenance Manager"


class ReportService:
    """Builds PDF reports for one tenant."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._init_styles()

    def _init_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=22,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=colors.HexColor(BRAND_COLOR)
        ))

        self.styles.add(ParagraphStyle(
            name='ReportSubtitle',
            parent=self.styles['Normal'],
            fontSize=13,
            spaceAfter=16,
            alignment=TA_CENTER,
            textColor=colors.gray
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceBefore=18,
            spaceAfter=10,
            textColor=colors.HexColor(BRAND_COLOR)
        ))

        self.styles.add(ParagraphStyle(
            name='TableHeader',
            parent=self.styles['Normal'],
            fontSize=10,
            textColor=colors.white,
            alignment=TA_CENTER
        ))

        self.styles.add(ParagraphStyle(
            name='TableCell',
            parent=self.styles['Normal'],
            fontSize=9
        ))

        self.styles.add(ParagraphStyle(
            name='Footer',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.gray,
            alignment=TA_CENTER
        ))

    def _create_header_table(self, config: ReportConfig, now: datetime) -> Table:
        data = [[Paragraph(config.title, self.styles['ReportTitle'])]]
        if config.subtitle:
            data.append([Paragraph(escape(config.subtitle), self.styles['ReportSubtitle'])])
        data.append([Paragraph(
            f"Generated: {now.strftime('%Y-%m-%d %H:%M')} | {config.author}",
            self.styles['Footer']
        )])

        table = Table(data, colWidths=[6.5*inch])
        table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 10),
        ]))
        return table

    def _create_table(self, headers: List[str], rows: Sequence[Sequence[Any]],
                      col_widths: Optional[List[float]] = None) -> Table:
        table_data = [[Paragraph(str(h), self.styles['TableHeader']) for h in headers]]
        for row in rows:
            table_data.append([
                Paragraph(escape(str(cell)) if cell is not None else '-', self.styles['TableCell'])
                for cell in row
            ])

        table = Table(table_data, colWidths=col_widths)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(BRAND_COLOR)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
            ('TOPPADDING', (0, 0), (-1, 0), 10),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f5f5f5')]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cccccc')),
            ('BOX', (0, 0), (-1, -1), 1, colors.HexColor(BRAND_COLOR)),
        ]))
        return table

    def _create_kpi_box(self, label: str, value: str, color: str = BRAND_COLOR) -> Table:
        data = [
            [Paragraph(f'<font color="{color}" size="16"><b>{value}</b></font>', self.styles['Normal'])],
            [Paragraph(f'<font color="gray" size="8">{label}</font>', self.styles['Normal'])]
        ]
        table = Table(data, colWidths=[1.5*inch])
        table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('BOX', (0, 0), (-1, -1), 1, colors.HexColor(color)),
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#f8f9fa')),
            ('TOPPADDING', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
        ]))
        return table

    def generate_maintenance_report(self, company: Company, snapshot, now: datetime,
                                    thresholds: MetricsThresholds = DEFAULT_THRESHOLDS) -> bytes:
        """Render the maintenance report of one tenant as PDF bytes."""
        orders = snapshot.work_orders
        reliability = metrics_service.compute_reliability_summary(orders, len(snapshot.equipment), thresholds)
        failures = metrics_service.rank_equipment_failures(orders)
        technicians = metrics_service.summarize_technicians(orders)
        healths = metrics_service.evaluate_fleet_health(snapshot.equipment, orders, now, thresholds)

        buffer = io.BytesIO()
        config = ReportConfig(title="Maintenance Report", subtitle=company.name)
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
            title=config.title,
            author=config.author,
        )

        story = [
            self._create_header_table(config, now),
            Spacer(1, 12),
            HRFlowable(width="100%", thickness=2, color=colors.HexColor(BRAND_COLOR)),
            Spacer(1, 12),
        ]

        kpi_table = Table([[
            self._create_kpi_box(f"MTBF (last {reliability.window_days} days)", f"{reliability.mtbf_hours:.1f}h"),
            self._create_kpi_box("MTTR", f"{reliability.mttr_hours:.1f}h"),
            self._create_kpi_box("Work Orders", str(reliability.total_orders)),
            self._create_kpi_box("Equipment", str(reliability.total_equipment)),
        ]])
        kpi_table.setStyle(TableStyle([('ALIGN', (0, 0), (-1, -1), 'CENTER')]))
        story.append(kpi_table)

        story.append(Paragraph("Failures by Equipment", self.styles['SectionHeader']))
        if failures:
            story.append(self._create_table(
                ['Equipment', 'Corrective Orders'],
                [[f.equipment_name, f.failure_count] for f in failures],
                col_widths=[4.5*inch, 2*inch]
            ))
        else:
            story.append(Paragraph("No failures recorded.", self.styles['Normal']))

        story.append(Paragraph("Technician Performance", self.styles['SectionHeader']))
        if technicians:
            story.append(self._create_table(
                ['Technician', 'Total', 'Completed', 'Avg. Resolution (h)'],
                [[t.name, t.total_orders, t.completed_orders, f"{t.avg_resolution_hours:.1f}"]
                 for t in technicians],
                col_widths=[2.9*inch, 1*inch, 1.1*inch, 1.5*inch]
            ))
        else:
            story.append(Paragraph("No work orders recorded.", self.styles['Normal']))

        story.append(Paragraph("Equipment Health", self.styles['SectionHeader']))
        if healths:
            story.append(self._create_table(
                ['Equipment', 'Location', 'Status', 'Score', 'MTBF (days)', 'Next Maintenance'],
                [[h.equipment.name, h.equipment.location, h.status, h.health_score,
                  f"{h.mtbf_days:.0f}", h.next_maintenance.strftime('%Y-%m-%d')]
                 for h in healths],
                col_widths=[1.6*inch, 1.2*inch, 0.8*inch, 0.6*inch, 0.9*inch, 1.4*inch]
            ))
        else:
            story.append(Paragraph("No equipment registered.", self.styles['Normal']))

        doc.build(story)
        buffer.seek(0)
        return buffer.getvalue()


def export_equipment_health_csv(healths: Sequence[EquipmentHealth]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=HEALTH_CSV_COLUMNS)
    writer.writeheader()
    for health in healths:
        writer.writerow(health.to_dict())
    return output.getvalue()
