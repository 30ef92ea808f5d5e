import io
import re
from datetime import datetime
from reportlab.lib.pagesizes import LETTER
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image
from reportlab.lib.units import inch
from reportlab.lib.enums import TA_CENTER
from PIL import Image as PILImage


class PDFGenerator:
    def __init__(self):
        self.buffer = io.BytesIO()
        self.doc = SimpleDocTemplate(self.buffer, pagesize=LETTER, topMargin=0.5*inch, bottomMargin=0.5*inch)
        self.styles = getSampleStyleSheet()
        self.elements = []

        self.styles.add(ParagraphStyle(name='TitleCenter', parent=self.styles['Heading1'], alignment=TA_CENTER, spaceAfter=20, fontSize=22, textColor=colors.HexColor('#1a56db')))
        self.styles.add(ParagraphStyle(name='SectionHeader', parent=self.styles['Heading2'], spaceBefore=15, spaceAfter=10, fontSize=15, textColor=colors.HexColor('#1f2937')))
        self.styles.add(ParagraphStyle(name='NormalText', parent=self.styles['Normal'], fontSize=10, leading=14, spaceAfter=6))
        self.styles.add(ParagraphStyle(name='Muted', parent=self.styles['Normal'], fontSize=9, textColor=colors.HexColor('#64748b')))

    def add_title(self, text):
        self.elements.append(Paragraph(text, self.styles['TitleCenter']))
        self.elements.append(Spacer(1, 0.2*inch))

    def add_section_header(self, text):
        self.elements.append(Paragraph(text, self.styles['SectionHeader']))

    def add_paragraph(self, text, style='NormalText'):
        # **bold** → <b>bold</b>
        formatted = re.sub(r'\*\*(.*?)\*\*', r'<b>\1</b>', text)
        if text.strip().startswith('- '):
            formatted = '&bull; ' + formatted.strip()[2:]
        try:
            self.elements.append(Paragraph(formatted, self.styles[style]))
        except ValueError:
            # Malformed markup: render plain
            self.elements.append(Paragraph(re.sub(r'<[^>]+>', '', text), self.styles[style]))

    def add_table(self, data, col_widths=None):
        if not data:
            return
        t = Table(data, colWidths=col_widths)
        t.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#eff6ff')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor('#1a56db')),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('LINEBELOW', (0, 0), (-1, -1), 0.5, colors.HexColor('#cbd5e1')),
            ('ALIGN', (1, 1), (1, -1), 'RIGHT'),
        ]))
        self.elements.append(t)
        self.elements.append(Spacer(1, 0.2*inch))

    def add_image(self, pil_image, max_width=7*inch):
        png = io.BytesIO()
        pil_image.save(png, format='PNG')
        png.seek(0)
        width, height = pil_image.size
        scale = min(1.0, max_width / width)
        self.elements.append(Image(png, width=width * scale, height=height * scale))
        self.elements.append(Spacer(1, 0.2*inch))

    def build(self):
        self.doc.build(self.elements)
        self.buffer.seek(0)
        return self.buffer


def generate_heatmap_report(page_title, device_type, heatmap_image, stats, recommendations=None):
    """
    PDF with the rendered heatmap, click statistics and recommendations.

    Args:
        page_title: Landing page title
        device_type: 'desktop' or 'mobile'
        heatmap_image: PIL image from HeatmapView.render()
        stats: dict from analytics.click_statistics()
        recommendations: list of strings (optional)

    Returns:
        BytesIO positioned at the start of the PDF
    """
    pdf = PDFGenerator()

    pdf.add_title(f"Click Heatmap Report: {page_title}")
    pdf.add_paragraph(f"Device: {device_type.capitalize()} &middot; Generated {datetime.utcnow():%Y-%m-%d %H:%M} UTC", style='Muted')

    if heatmap_image is not None:
        pdf.add_section_header("Heatmap")
        # PDF has no alpha channel; flatten onto white
        flat = heatmap_image.convert('RGBA')
        background = PILImage.new('RGBA', flat.size, (255, 255, 255, 255))
        pdf.add_image(PILImage.alpha_composite(background, flat).convert('RGB'))

    pdf.add_section_header("Click Statistics")
    total = stats.get('total_clicks') or 0
    pdf.add_table([
        ["Metric", "Value"],
        ["Total Clicks", f"{total:,.0f}"],
        ["Most Clicked Area", stats.get('most_clicked_area') or "n/a"],
        ["Least Engaged Section", stats.get('least_engaged_area') or "n/a"],
    ], col_widths=[2.5*inch, 4*inch])

    if recommendations:
        pdf.add_section_header("Recommendations")
        for rec in recommendations:
            pdf.add_paragraph(f"- {rec}")

    return pdf.build()
