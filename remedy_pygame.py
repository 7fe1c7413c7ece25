"""Pygame window for the Herbal Remedy Kitchen.

Three screens share one window: the ailment list, the cooking table where
ingredient cards are clicked into the pot, and the result card. Remedy
lookups run as asyncio tasks on a private event loop that is stepped once per
frame, so the window keeps drawing while the catalog is retried.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import math
from typing import List, Optional, Sequence, Tuple

import pygame

from cooking_flow import (
    PHASE_COOKING,
    PHASE_ERROR,
    PHASE_LOADING,
    PHASE_MIXED,
    CookingFlow,
    GameSettings,
    choose_ailment,
    clear_selection,
    configure_logging,
    describe_result,
    load_settings,
    open_store,
    resolve_seed,
)
from remedy_api import DATA_VERSION, format_recipe_card
from selection_store import JsonSelectionStore

logger = logging.getLogger(__name__)

SCREEN_WIDTH = 1100
SCREEN_HEIGHT = 760
CARD_COLUMNS = 4
CARD_WIDTH = 200
CARD_HEIGHT = 70
CARD_PADDING_X = 18
CARD_PADDING_Y = 16
CARD_LEFT_MARGIN = 60
CARD_TOP = 260
BUTTON_SIZE = (220, 56)
BACKGROUND_COLOR = (30, 38, 34)
PANEL_COLOR = (44, 58, 50)
CARD_COLOR = (233, 236, 224)
CARD_DISABLED_COLOR = (150, 156, 146)
POT_COLOR = (92, 74, 58)
POT_FILLED_COLOR = (118, 160, 96)
TEXT_COLOR = (245, 245, 240)
TEXT_DARK_COLOR = (30, 30, 30)
TEXT_MUTED_COLOR = (196, 204, 190)
ACCENT_COLOR = (255, 202, 61)
ERROR_COLOR = (235, 110, 96)

SCREEN_LIST = "ailment_list"
SCREEN_COOKING = "cooking"
SCREEN_RESULT = "result"


class PygameRemedyKitchen:
    """Run the Herbal Remedy Kitchen inside a Pygame window."""

    def __init__(self, settings: GameSettings, seed: Optional[int] = None) -> None:
        pygame.init()
        pygame.display.set_caption("Herbal Remedy Kitchen")
        self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
        self.clock = pygame.time.Clock()

        self.font_title = pygame.font.SysFont("Segoe UI", 40, bold=True)
        self.font_medium = pygame.font.SysFont("Segoe UI", 24)
        self.font_small = pygame.font.SysFont("Segoe UI", 20)

        self.settings = settings
        self.seed, self.rng = resolve_seed(seed)
        self.loop = asyncio.new_event_loop()
        self.store = open_store(settings)
        self.selection = JsonSelectionStore(settings.selection_path)
        clear_selection(self.selection)

        self.screen_name = SCREEN_LIST
        self.flow: Optional[CookingFlow] = None
        self.ailment_buttons: List[Tuple[pygame.Rect, str]] = []
        self.card_rects: List[Tuple[pygame.Rect, str]] = []
        self.pot_rect = pygame.Rect(SCREEN_WIDTH - 320, 90, 260, 150)
        self.mix_button = pygame.Rect(0, 0, 0, 0)
        self.back_button = pygame.Rect(40, SCREEN_HEIGHT - 80, *BUTTON_SIZE)
        self.next_button = pygame.Rect(SCREEN_WIDTH - 260, SCREEN_HEIGHT - 80, *BUTTON_SIZE)
        self.recipe_button = pygame.Rect(0, 0, *BUTTON_SIZE)
        self.recipe_button.midbottom = (SCREEN_WIDTH // 2, SCREEN_HEIGHT - 24)
        self.show_recipe = False

    # --- Game flow -----------------------------------------------------------
    def run(self) -> None:
        running = True
        while running:
            self.clock.tick(60)
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    running = False
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                    self._handle_click(event.pos)

            self._step_loop()
            self._draw()
            pygame.display.flip()

        self.shutdown()

    def shutdown(self) -> None:
        """Cancel any lookup still running and release the window."""

        if self.flow is not None:
            self.flow.close()
        pending = asyncio.all_tasks(self.loop)
        if pending:
            self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        self.loop.close()
        pygame.quit()

    def _step_loop(self) -> None:
        self.loop.run_until_complete(asyncio.sleep(0))

    def _open_cooking(self, ailment: str) -> None:
        choose_ailment(self.selection, ailment)
        self.flow = CookingFlow(self.store, self.selection, self.settings, rng=self.rng)
        self.loop.create_task(self.flow.start())
        self.screen_name = SCREEN_COOKING

    def _go_to(self, page: str) -> None:
        self.show_recipe = False
        if page == SCREEN_RESULT:
            self.screen_name = SCREEN_RESULT
            return
        if self.flow is not None:
            self.flow.close()
        self.flow = None
        clear_selection(self.selection)
        self.screen_name = SCREEN_LIST

    # --- Input ---------------------------------------------------------------
    def _handle_click(self, pos: Tuple[int, int]) -> None:
        if self.screen_name == SCREEN_LIST:
            for rect, name in self.ailment_buttons:
                if rect.collidepoint(pos):
                    self._open_cooking(name)
                    return
            return

        flow = self.flow
        if flow is None:
            self._go_to(SCREEN_LIST)
            return

        if self.show_recipe:
            self.show_recipe = False
            return
        if flow.remedy is not None and self.screen_name == SCREEN_COOKING and self.recipe_button.collidepoint(pos):
            self.show_recipe = True
            return

        if self.back_button.collidepoint(pos):
            self._go_to(flow.leave() if flow.phase != PHASE_MIXED else SCREEN_LIST)
            return

        if self.screen_name == SCREEN_RESULT:
            return

        if flow.phase == PHASE_MIXED and self.next_button.collidepoint(pos):
            self._go_to(flow.leave())
            return
        if flow.phase != PHASE_COOKING:
            return
        if flow.can_mix and self.mix_button.collidepoint(pos):
            flow.mix()
            return
        for rect, name in self.card_rects:
            if rect.collidepoint(pos):
                flow.add_ingredient(name)
                return

    # --- Drawing -------------------------------------------------------------
    def _draw(self) -> None:
        self.screen.fill(BACKGROUND_COLOR)
        if self.screen_name == SCREEN_LIST:
            self._draw_ailment_list()
        elif self.screen_name == SCREEN_COOKING:
            self._draw_cooking()
        else:
            self._draw_result()
        self._draw_version()

    def _draw_ailment_list(self) -> None:
        title = self.font_title.render("What is bothering you?", True, TEXT_COLOR)
        self.screen.blit(title, (CARD_LEFT_MARGIN, 40))

        catalog = self.store.current()
        self.ailment_buttons = []
        if catalog is None or len(catalog) == 0:
            self._blit_wrapped_text(
                "Remedies are not available. Check that remedies.json exists.",
                self.font_medium,
                ERROR_COLOR,
                pygame.Rect(CARD_LEFT_MARGIN, 120, SCREEN_WIDTH - 120, 80),
            )
            return

        for rect, name in zip(self._grid(len(catalog), top=130, width=300), catalog.names()):
            self.ailment_buttons.append((rect, name))
            self._draw_card(rect, name, CARD_COLOR, TEXT_DARK_COLOR)

    def _draw_cooking(self) -> None:
        flow = self.flow
        if flow is None:
            return
        heading = flow.remedy.name if flow.remedy else flow.query
        title = self.font_title.render(f"Recipe for {heading}", True, TEXT_COLOR)
        self.screen.blit(title, (CARD_LEFT_MARGIN, 30))

        status_color = ERROR_COLOR if flow.phase == PHASE_ERROR else ACCENT_COLOR
        self._blit_wrapped_text(
            flow.status_message,
            self.font_medium,
            status_color,
            pygame.Rect(CARD_LEFT_MARGIN, 100, SCREEN_WIDTH - 460, 120),
        )

        self._draw_pot(flow)
        self.card_rects = []
        if flow.phase in (PHASE_COOKING, PHASE_MIXED):
            available = flow.available_ingredients()
            for rect, name in zip(self._grid(len(available), top=CARD_TOP), available):
                self.card_rects.append((rect, name))
                color = CARD_COLOR if flow.phase == PHASE_COOKING else CARD_DISABLED_COLOR
                self._draw_card(rect, name, color, TEXT_DARK_COLOR)

        if flow.can_mix:
            self.mix_button = pygame.Rect(0, 0, *BUTTON_SIZE)
            self.mix_button.midtop = (self.pot_rect.centerx, self.pot_rect.bottom + 20)
            self._draw_card(self.mix_button, "Mix", ACCENT_COLOR, TEXT_DARK_COLOR)
        else:
            self.mix_button = pygame.Rect(0, 0, 0, 0)

        back_label = "Return to Ailment List" if flow.phase == PHASE_ERROR else "Back"
        self._draw_card(self.back_button, back_label, PANEL_COLOR, TEXT_COLOR)
        if flow.phase == PHASE_MIXED:
            self._draw_card(self.next_button, "See Result", ACCENT_COLOR, TEXT_DARK_COLOR)
        elif flow.phase == PHASE_LOADING:
            self._draw_spinner()
        if flow.remedy is not None:
            self._draw_card(self.recipe_button, "Recipe", PANEL_COLOR, TEXT_COLOR)
        if self.show_recipe:
            self._draw_recipe_popup()

    def recipe_text(self) -> str:
        if self.flow is None or self.flow.remedy is None:
            return ""
        return format_recipe_card(self.flow.remedy)

    def _draw_recipe_popup(self) -> None:
        panel = pygame.Rect(0, 0, 640, 460)
        panel.center = (SCREEN_WIDTH // 2, SCREEN_HEIGHT // 2)
        pygame.draw.rect(self.screen, PANEL_COLOR, panel, border_radius=18)
        pygame.draw.rect(self.screen, ACCENT_COLOR, panel, width=2, border_radius=18)
        body = panel.inflate(-48, -48)
        name, _, details = self.recipe_text().partition("\n\n")
        y = self._blit_wrapped_text(f"Recipe for {name}:", self.font_medium, ACCENT_COLOR, body)
        self._blit_wrapped_text(
            details,
            self.font_small,
            TEXT_COLOR,
            pygame.Rect(body.x, y + 8, body.width, body.bottom - y - 8),
        )

    def _draw_pot(self, flow: CookingFlow) -> None:
        color = POT_FILLED_COLOR if flow.phase == PHASE_MIXED else POT_COLOR
        pygame.draw.ellipse(self.screen, color, self.pot_rect)
        if flow.session is None:
            return
        added, required = flow.session.progress()
        label = self.font_small.render(f"{added} / {required}", True, TEXT_COLOR)
        self.screen.blit(label, label.get_rect(center=self.pot_rect.center))

    def _draw_result(self) -> None:
        flow = self.flow
        result = flow.result() if flow else None
        if result is None:
            self._go_to(SCREEN_LIST)
            return
        title = self.font_title.render(result.name, True, ACCENT_COLOR)
        self.screen.blit(title, (CARD_LEFT_MARGIN, 40))
        body = pygame.Rect(CARD_LEFT_MARGIN, 110, SCREEN_WIDTH - 2 * CARD_LEFT_MARGIN, 520)
        pygame.draw.rect(self.screen, PANEL_COLOR, body.inflate(24, 24), border_radius=16)
        y = body.y
        for paragraph in describe_result(result).split("\n")[1:]:
            y = self._blit_wrapped_text(
                paragraph,
                self.font_small,
                TEXT_COLOR,
                pygame.Rect(body.x, y, body.width, body.bottom - y),
            )
        self._draw_card(self.back_button, "Ailment List", PANEL_COLOR, TEXT_COLOR)

    def _draw_spinner(self) -> None:
        ticks = pygame.time.get_ticks() / 180.0
        center = self.pot_rect.center
        for index in range(8):
            angle = ticks + index * (math.pi / 4)
            x = center[0] + int(math.cos(angle) * 40)
            y = center[1] + int(math.sin(angle) * 40)
            radius = 3 + index // 2
            pygame.draw.circle(self.screen, TEXT_MUTED_COLOR, (x, y), radius)

    def _draw_version(self) -> None:
        label = self.font_small.render(f"data v{DATA_VERSION}  seed {self.seed}", True, TEXT_MUTED_COLOR)
        self.screen.blit(label, label.get_rect(bottomright=(SCREEN_WIDTH - 12, 24)))

    # --- Utility helpers -----------------------------------------------------
    def _grid(self, count: int, *, top: int, width: int = CARD_WIDTH) -> List[pygame.Rect]:
        rects: List[pygame.Rect] = []
        for index in range(count):
            row = index // CARD_COLUMNS
            column = index % CARD_COLUMNS
            x = CARD_LEFT_MARGIN + column * (width + CARD_PADDING_X)
            y = top + row * (CARD_HEIGHT + CARD_PADDING_Y)
            rects.append(pygame.Rect(x, y, width, CARD_HEIGHT))
        return rects

    def _draw_card(
        self,
        rect: pygame.Rect,
        text: str,
        color: Tuple[int, int, int],
        text_color: Tuple[int, int, int],
    ) -> None:
        pygame.draw.rect(self.screen, color, rect, border_radius=14)
        label = self.font_small.render(text, True, text_color)
        self.screen.blit(label, label.get_rect(center=rect.center))

    def _wrap_text(self, text: str, font: pygame.font.Font, max_width: int) -> List[str]:
        words = text.split()
        lines: List[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}".strip()
            if font.size(candidate)[0] <= max_width or not current:
                current = candidate
            else:
                lines.append(current)
                current = word
        if current:
            lines.append(current)
        return lines if lines else [""]

    def _blit_wrapped_text(
        self,
        text: str,
        font: pygame.font.Font,
        color: Tuple[int, int, int],
        rect: pygame.Rect,
    ) -> int:
        line_height = font.get_linesize()
        y = rect.y
        for paragraph in text.split("\n"):
            for line in self._wrap_text(paragraph, font, rect.width):
                if y + line_height > rect.bottom:
                    return y
                self.screen.blit(font.render(line, True, color), (rect.x, y))
                y += line_height
        return y


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Herbal Remedy Kitchen (pygame)")
    parser.add_argument("--settings", type=str, default=None, help="Optional JSON settings file")
    parser.add_argument("--data-dir", type=str, default=None, help="Folder holding remedies.json")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for the pantry order")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    try:
        settings = load_settings(args.settings, data_dir=args.data_dir)
    except ValueError as exc:
        print(f"Invalid settings: {exc}")
        return 2
    game = PygameRemedyKitchen(settings, seed=args.seed)
    game.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
