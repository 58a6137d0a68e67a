# renderers/bracket_diagram.py
from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from domain.bracket import next_slot, preliminary_target
from domain.enums import Slot
from domain.models import PRELIMINARY_ROUND, BracketView, MatchSummary, TeamRef


@dataclass(frozen=True)
class DiagramStyle:
    # Layout (logical units; final pixels = logical * scale)
    margin: int = 36
    title_h: int = 48
    box_w: int = 300
    box_h: int = 96
    h_gap: int = 80
    v_gap: int = 20

    scale: float = 1.0

    bg: tuple[int, int, int] = (18, 18, 22)
    text: tuple[int, int, int] = (236, 232, 224)
    subtle: tuple[int, int, int] = (150, 146, 140)
    box_fill: tuple[int, int, int] = (34, 32, 36)
    box_border: tuple[int, int, int] = (110, 104, 98)
    line: tuple[int, int, int] = (90, 84, 80)
    winner: tuple[int, int, int] = (60, 160, 90)

    font_size: int = 20
    font_size_small: int = 15


class BracketDiagramRenderer:
    """
    PNG bracket: one column per round (preliminary round first), each match a
    card with both teams and scores, connectors drawn along the winner path.
    """

    def __init__(self, style: DiagramStyle | None = None, font_path: Optional[str] = None) -> None:
        self.style = style or DiagramStyle()
        self.font_path = font_path

    def _font(self, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        candidates = [self.font_path] if self.font_path else []
        candidates += ["DejaVuSansMono.ttf", "Consolas.ttf", "Courier New.ttf"]
        for name in candidates:
            try:
                return ImageFont.truetype(name, size)
            except OSError:
                continue
        return ImageFont.load_default()

    # -----------------------------
    # Layout (no drawing)
    # -----------------------------

    def layout(self, view: BracketView) -> dict[tuple[int, int], tuple[int, int]]:
        """
        (round_no, position) -> logical top-left of the match card.
        Round 0 is stacked evenly; later rounds sit between their feeders;
        preliminary matches sit beside the round 0 match they feed.
        """
        style = self.style
        by_round = {r.round_no: r.matches for r in view.rounds}
        has_prelim = PRELIMINARY_ROUND in by_round
        col_w = style.box_w + style.h_gap
        top = style.margin + style.title_h

        def col_x(round_no: int) -> int:
            return style.margin + (round_no + (1 if has_prelim else 0)) * col_w

        xy: dict[tuple[int, int], tuple[int, int]] = {}
        step = style.box_h + style.v_gap
        if has_prelim:
            # room for up to two feeders beside each round 0 card
            step = style.box_h * 2 + style.v_gap * 2

        for m in by_round.get(0, []):
            xy[(0, m.position)] = (col_x(0), top + m.position * step)

        round_no = 1
        while round_no in by_round:
            for m in by_round[round_no]:
                y1 = xy.get((round_no - 1, 2 * m.position), (0, top))[1]
                y2 = xy.get((round_no - 1, 2 * m.position + 1), (0, top))[1]
                xy[(round_no, m.position)] = (col_x(round_no), (y1 + y2) // 2)
            round_no += 1

        if has_prelim:
            prelims = by_round[PRELIMINARY_ROUND]
            first_round = len(by_round.get(0, []))
            for m in prelims:
                _, pos, slot = preliminary_target(
                    m.position, preliminary_matches=len(prelims), first_round_matches=first_round
                )
                target_y = xy.get((0, pos), (0, top))[1]
                offset = 0 if slot is Slot.TEAM1 else style.box_h + style.v_gap
                xy[(PRELIMINARY_ROUND, m.position)] = (col_x(PRELIMINARY_ROUND), target_y + offset)

        return xy

    def _edges(self, view: BracketView) -> list[tuple[tuple[int, int], tuple[int, int]]]:
        by_round = {r.round_no: r.matches for r in view.rounds}
        prelims = by_round.get(PRELIMINARY_ROUND, [])
        first_round = len(by_round.get(0, []))
        out: list[tuple[tuple[int, int], tuple[int, int]]] = []
        for r in view.rounds:
            for m in r.matches:
                if r.round_no == PRELIMINARY_ROUND:
                    dst_round, dst_pos, _ = preliminary_target(
                        m.position, preliminary_matches=len(prelims), first_round_matches=first_round
                    )
                else:
                    dst_round, dst_pos, _ = next_slot(r.round_no, m.position)
                if dst_round in by_round and dst_pos < len(by_round[dst_round]):
                    out.append(((r.round_no, m.position), (dst_round, dst_pos)))
        return out

    # -----------------------------
    # Drawing
    # -----------------------------

    def render_png(self, view: BracketView, *, title: str | None = None) -> bytes:
        style = self.style
        s = float(style.scale or 1.0)

        def S(v: int) -> int:
            return int(v * s)

        xy = self.layout(view)
        max_x = max((x for x, _ in xy.values()), default=style.margin)
        max_y = max((y for _, y in xy.values()), default=style.margin)
        width = max(2, S(max_x + style.box_w + style.margin))
        height = max(2, S(max_y + style.box_h + style.margin))

        img = Image.new("RGB", (width, height), style.bg)
        draw = ImageDraw.Draw(img)
        f_main = self._font(max(10, S(style.font_size)))
        f_small = self._font(max(8, S(style.font_size_small)))
        box_w, box_h = S(style.box_w), S(style.box_h)

        if title:
            draw.text((S(style.margin), S(style.margin // 2)), title, font=f_main, fill=style.text)

        for src, dst in self._edges(view):
            sx, sy = S(xy[src][0]), S(xy[src][1])
            dx, dy = S(xy[dst][0]), S(xy[dst][1])
            start = (sx + box_w, sy + box_h // 2)
            end = (dx, dy + box_h // 2)
            mid_x = (start[0] + end[0]) // 2
            draw.line([start, (mid_x, start[1]), (mid_x, end[1]), end], fill=style.line, width=max(2, S(2)))

        for r in view.rounds:
            for m in r.matches:
                x, y = xy[(r.round_no, m.position)]
                self._draw_match_card(draw, m, x=S(x), y=S(y), w=box_w, h=box_h, f_main=f_main, f_small=f_small)

        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def _draw_match_card(
        self,
        draw: ImageDraw.ImageDraw,
        m: MatchSummary,
        *,
        x: int,
        y: int,
        w: int,
        h: int,
        f_main: ImageFont.ImageFont,
        f_small: ImageFont.ImageFont,
    ) -> None:
        style = self.style
        draw.rectangle([x, y, x + w, y + h], fill=style.box_fill, outline=style.box_border, width=2)

        header = f"{m.code}  {m.status.value.upper()}"
        if m.scheduled_time is not None and not m.completed:
            header += f"  {m.scheduled_time:%m-%d %H:%M}"
        draw.text((x + 8, y + 4), header, font=f_small, fill=style.subtle)

        row_h = (h - 24) // 2
        rows = ((m.team1, m.score1), (m.team2, m.score2))
        for i, (team, score) in enumerate(rows):
            ty = y + 24 + i * row_h
            is_winner = m.winner is not None and team is not None and team.id == m.winner.id
            color = style.winner if is_winner else style.text
            draw.text((x + 8, ty), self._ellipsize(draw, _name(team), f_main, w - 64), font=f_main, fill=color)
            if score is not None:
                draw.text((x + w - 40, ty), str(score), font=f_main, fill=color)

    @staticmethod
    def _ellipsize(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_w: int) -> str:
        t = text.strip()
        if draw.textlength(t, font=font) <= max_w:
            return t
        while t and draw.textlength(t + "...", font=font) > max_w:
            t = t[:-1]
        return (t + "...") if t else "..."


def _name(team: Optional[TeamRef]) -> str:
    if team is None:
        return "TBD"
    return team.name or f"Team {team.id}"
