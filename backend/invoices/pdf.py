"""Printable invoice rendered with reportlab"""
from io import BytesIO

from django.conf import settings
from django.utils import timezone
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

DARK = (40 / 255, 40 / 255, 40 / 255)
GREY = (100 / 255, 100 / 255, 100 / 255)
HEADER_FILL = (79 / 255, 70 / 255, 229 / 255)

PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT = 20 * mm
RIGHT = PAGE_WIDTH - 20 * mm
BOTTOM_MARGIN = 30 * mm
TABLE_COLUMNS = [LEFT, 110 * mm, 135 * mm, 165 * mm]


def _money(value):
    return f"{settings.WORKSHOP_CURRENCY} {value:,.2f}"


class InvoicePDF:
    """Draws one invoice on as many A4 pages as its parts need"""

    def __init__(self, invoice):
        self.invoice = invoice
        self.buffer = BytesIO()
        self.pdf = canvas.Canvas(self.buffer, pagesize=A4)
        self.pdf.setTitle(f"Invoice {invoice.custom_id}")
        self.y = PAGE_HEIGHT - 20 * mm

    def text(self, x, value, size=10, bold=False, color=GREY, align='left'):
        self.pdf.setFont('Helvetica-Bold' if bold else 'Helvetica', size)
        self.pdf.setFillColorRGB(*color)
        if align == 'center':
            self.pdf.drawCentredString(x, self.y, value)
        elif align == 'right':
            self.pdf.drawRightString(x, self.y, value)
        else:
            self.pdf.drawString(x, self.y, value)

    def ensure_space(self, height):
        if self.y - height < BOTTOM_MARGIN:
            self.pdf.showPage()
            self.y = PAGE_HEIGHT - 20 * mm

    def draw_header(self):
        center = PAGE_WIDTH / 2
        self.text(center, settings.WORKSHOP_NAME, size=20, bold=True, color=DARK, align='center')
        self.y -= 10 * mm
        self.text(center, settings.WORKSHOP_ADDRESS, size=12, align='center')
        self.y -= 6 * mm
        self.text(center, f"Phone: {settings.WORKSHOP_PHONE} | Email: {settings.WORKSHOP_EMAIL}", size=12, align='center')
        self.y -= 14 * mm
        self.text(center, 'INVOICE', size=16, bold=True, color=DARK, align='center')
        self.y -= 10 * mm

        created = timezone.localtime(self.invoice.created_at) if self.invoice.created_at else timezone.localtime()
        self.text(LEFT, f"Invoice #: {self.invoice.custom_id}")
        self.y -= 6 * mm
        self.text(LEFT, f"Date: {created.strftime('%d/%m/%Y')}")
        self.y -= 14 * mm

    def draw_customer(self):
        self.text(LEFT, 'Customer Details:', size=12, bold=True, color=DARK)
        self.y -= 8 * mm
        self.text(LEFT, f"Name: {self.invoice.customer_name}")
        self.y -= 6 * mm
        vehicle = self.invoice.vehicle_number
        if self.invoice.vehicle_model:
            vehicle = f"{vehicle} ({self.invoice.vehicle_model})"
        self.text(LEFT, f"Vehicle: {vehicle}")
        self.y -= 14 * mm

    def draw_services(self):
        self.text(LEFT, 'Services Performed:', size=12, bold=True, color=DARK)
        self.y -= 8 * mm
        services = self.invoice.services_done or 'General service and maintenance'
        for line in simpleSplit(services, 'Helvetica', 10, RIGHT - LEFT):
            self.ensure_space(6 * mm)
            self.text(LEFT, line)
            self.y -= 5 * mm
        self.y -= 8 * mm

    def draw_table_header(self):
        self.pdf.setFillColorRGB(*HEADER_FILL)
        self.pdf.rect(LEFT - 2 * mm, self.y - 2 * mm, RIGHT - LEFT + 4 * mm, 7 * mm, stroke=0, fill=1)
        for x, title in zip(TABLE_COLUMNS, ['Description', 'Qty', 'Unit Price', 'Total']):
            self.text(x, title, bold=True, color=(1, 1, 1))
        self.y -= 8 * mm

    def draw_parts(self):
        items = list(self.invoice.items.all())
        if not items:
            return
        self.ensure_space(20 * mm)
        self.text(LEFT, 'Parts Used:', size=12, bold=True, color=DARK)
        self.y -= 8 * mm
        self.draw_table_header()
        for item in items:
            if self.y - 6 * mm < BOTTOM_MARGIN:
                self.pdf.showPage()
                self.y = PAGE_HEIGHT - 20 * mm
                self.draw_table_header()
            name = simpleSplit(item.product_name, 'Helvetica', 10, TABLE_COLUMNS[1] - LEFT - 4 * mm)
            self.text(TABLE_COLUMNS[0], name[0] if name else '')
            self.text(TABLE_COLUMNS[1], str(item.qty))
            self.text(TABLE_COLUMNS[2], _money(item.unit_price))
            self.text(TABLE_COLUMNS[3], _money(item.line_total))
            self.y -= 6 * mm
        self.y -= 6 * mm

    def draw_totals(self):
        self.ensure_space(40 * mm)
        label_x, value_x = 120 * mm, RIGHT
        rows = [
            ('Parts Total:', self.invoice.parts_total),
            ('Service Charge:', self.invoice.service_charge),
            ('Subtotal:', self.invoice.subtotal),
            (f"Tax ({self.invoice.tax_percent}%):", self.invoice.tax),
        ]
        for label, amount in rows:
            self.text(label_x, label)
            self.text(value_x, _money(amount), align='right')
            self.y -= 6 * mm
        self.y -= 4 * mm
        self.text(label_x, 'Total Amount:', size=12, bold=True, color=DARK)
        self.text(value_x, _money(self.invoice.total), size=12, bold=True, color=DARK, align='right')

    def draw_footer(self):
        center = PAGE_WIDTH / 2
        self.y = 20 * mm
        self.text(center, 'Thank you for your business!', size=8, align='center')
        self.y -= 5 * mm
        self.text(center, 'Please make payment within 15 days', size=8, align='center')

    def render(self):
        self.draw_header()
        self.draw_customer()
        self.draw_services()
        self.draw_parts()
        self.draw_totals()
        self.draw_footer()
        self.pdf.showPage()
        self.pdf.save()
        return self.buffer.getvalue()


def render_invoice_pdf(invoice):
    """PDF bytes for an invoice"""
    return InvoicePDF(invoice).render()
