"""
Investor Report PDF

Renders the investor report: a one-page KPI summary built with reportlab
platypus flowables (title block, KPI table, footer line).

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

# (KPI key, label, format)
KPI_ROWS = [
    ("totalRevenue", "Total revenue", "{:,.2f}"),
    ("totalExpense", "Total expense", "{:,.2f}"),
    ("grossMargin", "Gross margin", "{:,.2f}"),
    ("totalAnimals", "Active animals", "{:,}"),
    ("avgLitterSize", "Average litter size", "{:.2f}"),
    ("totalEggs", "Eggs collected", "{:,}"),
    ("totalMilk", "Milk volume", "{:,.2f}"),
]


class InvestorReportTemplate:
    """Layout and styling for the investor KPI report"""

    def __init__(self, title: str = "Investor Report", farm_name: str = "Herdbook Farm",
                 period: Optional[str] = None):
        self.title = title
        self.farm_name = farm_name
        self.period = period or "All dates"
        self.styles = self._create_styles()

    def _create_styles(self) -> Dict[str, ParagraphStyle]:
        styles = getSampleStyleSheet()
        return {
            'Title': ParagraphStyle(
                'ReportTitle',
                parent=styles['Title'],
                fontSize=18,
                textColor=colors.darkgreen,
                alignment=TA_CENTER,
                spaceAfter=12,
                fontName='Helvetica-Bold'
            ),
            'Subtitle': ParagraphStyle(
                'ReportSubtitle',
                parent=styles['Normal'],
                fontSize=11,
                textColor=colors.grey,
                alignment=TA_CENTER,
                spaceAfter=20
            ),
            'Footer': ParagraphStyle(
                'ReportFooter',
                parent=styles['Normal'],
                fontSize=8,
                textColor=colors.grey,
                alignment=TA_CENTER
            ),
        }

    def _kpi_table(self, kpis: Dict[str, Any]) -> Table:
        data: List[List[str]] = [["Metric", "Value"]]
        for key, label, fmt in KPI_ROWS:
            data.append([label, fmt.format(kpis.get(key, 0))])

        table = Table(data, colWidths=[9 * cm, 6 * cm])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.darkgreen),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (1, 1), (1, -1), 'RIGHT'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.lightgrey]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        return table

    def build(self, kpis: Dict[str, Any], output_path: Path) -> Path:
        """Write the PDF to output_path and return it"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        doc = SimpleDocTemplate(
            str(output_path),
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=2.5 * cm,
            bottomMargin=2 * cm,
            title=self.title
        )
        story = [
            Paragraph(self.title, self.styles['Title']),
            Paragraph(f"{self.farm_name} - {self.period}", self.styles['Subtitle']),
            self._kpi_table(kpis),
            Spacer(1, 1 * cm),
            Paragraph(f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}", self.styles['Footer']),
        ]
        doc.build(story)
        logger.info(f"Investor report written to {output_path}")
        return output_path


def describe_period(date_from: Optional[str], date_to: Optional[str]) -> str:
    """Human-readable label for an optional date range"""
    if date_from and date_to:
        return f"{date_from} to {date_to}"
    if date_from:
        return f"From {date_from}"
    if date_to:
        return f"Through {date_to}"
    return "All dates"


def investor_report_path(reports_dir: Path, job_id: str) -> Path:
    return Path(reports_dir) / f"investor_report_{job_id}.pdf"
