"""Order receipt rendered with the reportlab canvas."""

from __future__ import annotations

import io
from datetime import datetime

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from utils.statuses import get_status_colors, get_status_label
from utils.text_utils import format_date_fr, to_int

# ─── PALETTE ───
PRIMARY = HexColor("#7C3AED")
CHARCOAL = HexColor("#1F2937")
SLATE = HexColor("#6B7280")
RULE = HexColor("#E5E7EB")
PALE = HexColor("#F9FAFB")

W, H = A4
MARGIN = 40
CONTENT_W = W - 2 * MARGIN
LABEL_W = 130

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


def receipt_filename(order) -> str:
    return f"commande_{str(order.id)[:8]}.pdf"


class OrderReceipt:
    """One A4 page per receipt, with overflow onto new pages."""

    def __init__(self, order, generated_at: datetime | None = None):
        self.order = order
        self.generated_at = generated_at or datetime.utcnow()
        self.buffer = io.BytesIO()
        self.c = canvas.Canvas(self.buffer, pagesize=A4)
        self.c.setTitle(f"Commande #{str(order.id)[:8]}")
        self.c.setAuthor("Aténays")
        self.y = H - MARGIN

    # ─── DRAWING PRIMITIVES ───

    def draw_text(self, text, x, y, font=FONT, size=10, color=CHARCOAL, align="left"):
        self.c.saveState()
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        if align == "center":
            self.c.drawCentredString(x, y, text)
        elif align == "right":
            self.c.drawRightString(x, y, text)
        else:
            self.c.drawString(x, y, text)
        self.c.restoreState()

    def draw_line(self, y, color=RULE, width=0.8):
        self.c.saveState()
        self.c.setStrokeColor(color)
        self.c.setLineWidth(width)
        self.c.line(MARGIN, y, W - MARGIN, y)
        self.c.restoreState()

    def wrap(self, text, max_width, font=FONT, size=10):
        lines = []
        for paragraph in str(text).splitlines() or [""]:
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}".strip()
                if self.c.stringWidth(candidate, font, size) <= max_width:
                    current = candidate
                else:
                    if current:
                        lines.append(current)
                    current = word
            lines.append(current)
        return lines

    def ensure_space(self, needed):
        if self.y - needed < MARGIN + 40:
            self.c.showPage()
            self.y = H - MARGIN

    # ─── SECTIONS ───

    def header(self):
        self.draw_text(
            "Aténays - Détails de commande", MARGIN, self.y - 18, FONT_BOLD, 20, PRIMARY
        )
        self.draw_text(
            f"Commande #{str(self.order.id)[:8]}", MARGIN, self.y - 38, FONT, 11, SLATE
        )

        status = self.order.status or "pending"
        label = get_status_label(status)
        background, foreground = get_status_colors(status)
        badge_w = self.c.stringWidth(label, FONT_BOLD, 10) + 20
        x = W - MARGIN - badge_w
        self.c.saveState()
        self.c.setFillColor(HexColor(background))
        self.c.roundRect(x, self.y - 40, badge_w, 20, 6, fill=1, stroke=0)
        self.c.restoreState()
        self.draw_text(label, x + badge_w / 2, self.y - 33, FONT_BOLD, 10,
                       HexColor(foreground), align="center")

        self.y -= 54
        self.draw_line(self.y, PRIMARY, 1.2)
        self.y -= 20

    def section_title(self, title):
        self.ensure_space(40)
        self.draw_text(title, MARGIN, self.y, FONT_BOLD, 13, PRIMARY)
        self.y -= 8
        self.draw_line(self.y)
        self.y -= 16

    def row(self, label, value):
        self.ensure_space(16)
        self.draw_text(label, MARGIN, self.y, FONT_BOLD, 10, SLATE)
        self.draw_text(str(value), MARGIN + LABEL_W, self.y, FONT, 10)
        self.y -= 16

    def client_section(self):
        order = self.order
        self.section_title("Informations client")
        self.row("Client:", order.client_name or "Client inconnu")
        self.row("Royaume:", order.client_realm or "Non spécifié")
        self.row("Personnage:", order.character or "Non spécifié")
        self.row("Date de commande:", format_date_fr(order.created_at))
        self.y -= 10

    def services_section(self):
        self.section_title("Services commandés")
        col_level = MARGIN + CONTENT_W * 0.55
        col_price = W - MARGIN

        self.c.saveState()
        self.c.setFillColor(PALE)
        self.c.rect(MARGIN, self.y - 5, CONTENT_W, 18, fill=1, stroke=0)
        self.c.restoreState()
        self.draw_text("Service", MARGIN + 6, self.y, FONT_BOLD, 10, SLATE)
        self.draw_text("Niveau", col_level, self.y, FONT_BOLD, 10, SLATE)
        self.draw_text("Prix", col_price - 6, self.y, FONT_BOLD, 10, SLATE, align="right")
        self.y -= 20

        for profession in self.order.professions or []:
            if not isinstance(profession, dict):
                continue
            self.ensure_space(18)
            self.draw_text(profession.get("name") or "N/A", MARGIN + 6, self.y)
            self.draw_text(f"1-{profession.get('levelRange') or '525'}", col_level, self.y)
            self.draw_text(
                f"{to_int(profession.get('price'))} or", col_price - 6, self.y, align="right"
            )
            self.y -= 6
            self.draw_line(self.y, RULE, 0.4)
            self.y -= 12

        self.ensure_space(20)
        self.draw_text("Total:", col_level, self.y, FONT_BOLD, 11)
        self.draw_text(
            f"{self.order.price or 0} or", col_price - 6, self.y, FONT_BOLD, 11, align="right"
        )
        self.y -= 26

    def payment_section(self):
        order = self.order
        self.section_title("Informations de paiement")
        self.row("Prix total:", f"{order.price or 0} or")
        self.row("Acompte versé:", f"{order.initial_payment or 0} or")
        self.row("Reste à payer:", f"{order.remaining} or")
        self.y -= 10

    def notes_section(self):
        if not self.order.notes:
            return
        self.section_title("Notes")
        for line in self.wrap(self.order.notes, CONTENT_W):
            self.ensure_space(14)
            self.draw_text(line, MARGIN, self.y)
            self.y -= 14

    def footer(self):
        self.draw_line(MARGIN + 28)
        self.draw_text(
            f"Document généré le {format_date_fr(self.generated_at)} par Aténays",
            W / 2, MARGIN + 14, FONT, 8, SLATE, align="center",
        )
        self.draw_text(
            "Ce document fait office de reçu pour la commande",
            W / 2, MARGIN + 4, FONT, 8, SLATE, align="center",
        )

    def render(self) -> bytes:
        self.header()
        self.client_section()
        self.services_section()
        self.payment_section()
        self.notes_section()
        self.footer()
        self.c.showPage()
        self.c.save()
        return self.buffer.getvalue()


def render_order_receipt(order) -> bytes:
    return OrderReceipt(order).render()
