from __future__ import annotations

HEADER_ROWS = 3
FOOTER_ROWS = 2
LIST_BORDER_ROWS = 2
FIXED_CHROME_ROWS = HEADER_ROWS + FOOTER_ROWS + LIST_BORDER_ROWS


def calc_list_height(raw_height: int) -> int:
    return max(1, raw_height - FIXED_CHROME_ROWS)


class ViewportState:
    """Scroll window of ``height`` rows over a list of ``total`` items.

    ``select_next`` and ``select_prev`` never wrap or clamp against the list
    length; callers at either end use ``select_first`` / ``select_last``.
    """

    def __init__(self, raw_height: int) -> None:
        self.selected = 0
        self.offset = 0
        self.height = calc_list_height(raw_height)

    def __repr__(self) -> str:
        return (
            f"ViewportState(selected={self.selected}, offset={self.offset}, "
            f"height={self.height})"
        )

    def select_next(self) -> None:
        if self.selected - self.offset == self.height - 1:
            self.offset += 1
        self.selected += 1

    def select_prev(self) -> None:
        if self.selected - self.offset == 0:
            self.offset -= 1
        self.selected -= 1

    def select_next_page(self, total: int) -> None:
        if total <= 0:
            self.select_first()
            return
        if total < self.height:
            self.selected = total - 1
            self.offset = 0
        elif self.selected + self.height < total - 1:
            self.selected += self.height
            if self.selected + self.height > total - 1:
                self.offset = total - self.height
            else:
                self.offset = self.selected
        else:
            self.selected = total - 1
            self.offset = total - self.height

    def select_prev_page(self, total: int) -> None:
        if total < self.height:
            self.selected = 0
            self.offset = 0
        elif self.selected > self.height:
            self.selected -= self.height
            if self.selected < self.height:
                self.offset = 0
            else:
                self.offset = self.selected - self.height + 1
        else:
            self.selected = 0
            self.offset = 0

    def select_first(self) -> None:
        self.selected = 0
        self.offset = 0

    def select_last(self, total: int) -> None:
        if total <= 0:
            self.select_first()
            return
        self.selected = total - 1
        if self.height < total:
            self.offset = total - self.height

    def resize(self, raw_height: int) -> None:
        # offset is left alone; the selection may sit outside the window
        # until the next movement.
        self.height = calc_list_height(raw_height)

    def visible_range(self, total: int) -> tuple[int, int]:
        start = min(self.offset, max(total - 1, 0))
        return start, min(start + self.height, total)
