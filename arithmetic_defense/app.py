"""Pygame UI shell for Arithmetic Defense.

Meteors carrying arithmetic problems fall towards an energy core; typing a
meteor's answer destroys it. Deterministic timing/scoring/RNG/state lives in
``arithmetic_defense.engine``; this module only renders snapshots, turns key
presses into engine actions and performs the effects the engine queues.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import os
import random
from array import array
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import Clock, RealClock
from .config import DefenseConfig
from .effects import ComboPulse, Effect, GameOverEffect, HitEffect, KeyTick, MissEffect
from .engine import DefenseGame
from .entities import Entity, EntityType
from .session import DefenseSnapshot, SessionState

logger = logging.getLogger(__name__)

BG_TOP = (0, 0, 0)
BG_BOTTOM = (10, 10, 26)
PRIMARY = (0, 240, 255)
SECONDARY = (112, 0, 255)
ACCENT = (255, 0, 85)
GOLD = (251, 191, 36)
TEXT_MAIN = (255, 255, 255)
TEXT_MUTED = (148, 163, 184)

PARTICLE_COUNT = 8
PARTICLE_LIFETIME_S = 0.6
PARTICLE_TRAVEL_PX = 100.0
SHAKE_DURATION_S = 0.2
SHAKE_AMPLITUDE_PX = 15
COMBO_BANNER_S = 0.8
METEOR_W = 80
HIT_ZONE_FROM_BOTTOM = 350

_KEYPAD_DIGITS = {
    pygame.K_KP0: "0",
    pygame.K_KP1: "1",
    pygame.K_KP2: "2",
    pygame.K_KP3: "3",
    pygame.K_KP4: "4",
    pygame.K_KP5: "5",
    pygame.K_KP6: "6",
    pygame.K_KP7: "7",
    pygame.K_KP8: "8",
    pygame.K_KP9: "9",
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 48)
        self._item_font = pygame.font.Font(None, 34)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        _fill_gradient(surface, BG_TOP, BG_BOTTOM)

        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, title.get_rect(center=(w // 2, h // 4)))

        row_h = 48
        y = h // 2 - (row_h * len(self._items)) // 2
        for idx, item in enumerate(self._items):
            row = pygame.Rect(w // 2 - 150, y, 300, row_h - 8)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, PRIMARY, row, border_radius=20)
            else:
                pygame.draw.rect(surface, (30, 41, 59), row, 1, border_radius=20)
            color = BG_TOP if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, text.get_rect(center=row.center))
            y += row_h

        foot = self._hint_font.render("Enter/Space: Select  |  Esc: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 16)))


@dataclass(slots=True)
class _Particle:
    x: float
    y: float
    angle: float
    speed: float
    color: tuple[int, int, int]
    born_s: float


class _CueSounds:
    """Short synthesized cues standing in for haptics on desktop.

    Best-effort: when the mixer is unavailable (headless runs, no audio
    device) every cue silently does nothing.
    """

    _sample_rate = 22050
    _amp = 32767

    def __init__(self) -> None:
        self._available = False
        self._sounds: dict[str, pygame.mixer.Sound] = {}
        if os.environ.get("SDL_AUDIODRIVER", "").strip().lower() == "dummy":
            # Keep automated/headless runs silent and stable.
            return
        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            self._sounds = {
                "tick": self._build_tone_sound(1120.0, 0.03, gain=0.20),
                "hit": self._build_tone_sound(660.0, 0.12, gain=0.35),
                "boss": self._build_tone_sound(880.0, 0.20, gain=0.40),
                "miss": self._build_tone_sound(180.0, 0.25, gain=0.45),
            }
            self._available = True
        except pygame.error as exc:
            logger.warning(f"audio cues disabled: {exc}")

    def play(self, name: str) -> None:
        if not self._available:
            return
        sound = self._sounds.get(name)
        if sound is not None:
            sound.play()

    def _build_tone_sound(self, frequency_hz: float, duration_s: float, *, gain: float) -> pygame.mixer.Sound:
        sample_count = max(1, int(self._sample_rate * duration_s))
        fade_n = max(1, int(self._sample_rate * 0.008))
        out = array("h")
        for idx in range(sample_count):
            envelope = 1.0
            if idx < fade_n:
                envelope = idx / float(fade_n)
            tail = sample_count - idx - 1
            if tail < fade_n:
                envelope = min(envelope, tail / float(fade_n))
            phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(self._sample_rate)
            sample = math.sin(phase) * gain * max(0.0, envelope)
            out.append(int(max(-1.0, min(1.0, sample)) * self._amp))
        return pygame.mixer.Sound(buffer=out.tobytes())


class _EffectPlayer:
    """Interprets engine effect descriptors as particles, shake, banners and cues."""

    def __init__(self, *, cues: _CueSounds | None = None, rng: random.Random | None = None) -> None:
        self._cues = cues
        self._rng = rng if rng is not None else random.Random()
        self.particles: list[_Particle] = []
        self.shake_until_s = 0.0
        self.combo_banner: tuple[int, float] | None = None

    def apply(self, effect: Effect, *, now_s: float, field: pygame.Rect) -> None:
        if isinstance(effect, HitEffect):
            x, y = _meteor_center(field, effect.x, effect.progress)
            for i in range(PARTICLE_COUNT):
                self.particles.append(
                    _Particle(
                        x=x,
                        y=y,
                        angle=(math.pi * 2.0 * i) / PARTICLE_COUNT,
                        speed=self._rng.uniform(0.5, 1.0),
                        color=effect.color,
                        born_s=now_s,
                    )
                )
            self._cue("boss" if effect.entity_type is EntityType.BOSS else "hit")
        elif isinstance(effect, MissEffect):
            self.shake_until_s = now_s + SHAKE_DURATION_S
            self._cue("miss")
            _rumble_joysticks()
        elif isinstance(effect, ComboPulse):
            self.combo_banner = (effect.combo, now_s)
        elif isinstance(effect, KeyTick):
            self._cue("tick")
        elif isinstance(effect, GameOverEffect):
            self.particles.clear()
            self.combo_banner = None

    def shake_offset(self, now_s: float) -> int:
        if now_s >= self.shake_until_s:
            return 0
        remaining = self.shake_until_s - now_s
        step = int(remaining / 0.05)
        return SHAKE_AMPLITUDE_PX if step % 2 == 0 else -SHAKE_AMPLITUDE_PX

    def draw(self, surface: pygame.Surface, *, now_s: float, font: pygame.font.Font, combo: int) -> None:
        alive: list[_Particle] = []
        for p in self.particles:
            t = (now_s - p.born_s) / PARTICLE_LIFETIME_S
            if t >= 1.0:
                continue
            alive.append(p)
            eased = 1.0 - (1.0 - t) * (1.0 - t)
            dist = PARTICLE_TRAVEL_PX * p.speed * eased
            px = p.x + math.cos(p.angle) * dist
            py = p.y + math.sin(p.angle) * dist
            radius = max(1, int(4 * (1.0 - t)))
            pygame.draw.circle(surface, p.color, (int(px), int(py)), radius)
        self.particles = alive

        if self.combo_banner is None or combo < 2:
            return
        _, started = self.combo_banner
        age = now_s - started
        scale = 1.0 + max(0.0, 0.4 * (1.0 - age / COMBO_BANNER_S))
        text = font.render(f"{combo} COMBO!", True, GOLD)
        if scale != 1.0:
            text = pygame.transform.rotozoom(text, 0.0, scale)
        w, h = surface.get_size()
        surface.blit(text, text.get_rect(center=(w // 2, int(h * 0.18))))

    def _cue(self, name: str) -> None:
        if self._cues is not None:
            self._cues.play(name)


class DefenseScreen:
    def __init__(self, app: App, *, engine_factory: Callable[[], DefenseGame], clock: Clock) -> None:
        self._app = app
        self._engine = engine_factory()
        self._clock = clock
        self._effects = _EffectPlayer(cues=_CueSounds())
        self._title_font = pygame.font.Font(None, 64)
        self._big_font = pygame.font.Font(None, 48)
        self._meteor_font = pygame.font.Font(None, 28)
        self._small_font = pygame.font.Font(None, 24)
        self._stars = _make_stars(random.Random(self._engine.seed), app_size=pygame.display.get_surface().get_size())

    @property
    def engine(self) -> DefenseGame:
        return self._engine

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
            return

        state = self._engine.state
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if state is SessionState.MENU:
                self._engine.start()
            elif state is SessionState.GAMEOVER:
                self._engine.restart()
            return

        if state is not SessionState.PLAYING:
            return
        if event.key == pygame.K_BACKSPACE:
            self._engine.backspace()
        elif event.key in (pygame.K_DELETE, pygame.K_c):
            self._engine.clear()
        elif event.key in _KEYPAD_DIGITS:
            self._engine.submit_digit(_KEYPAD_DIGITS[event.key])
        elif event.unicode and event.unicode.isdigit():
            self._engine.submit_digit(event.unicode)

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        now_s = self._clock.now()
        field = _play_field(surface)
        for effect in self._engine.drain_effects():
            self._effects.apply(effect, now_s=now_s, field=field)

        snap = self._engine.snapshot()
        if snap.state is SessionState.MENU:
            self._render_menu(surface)
        elif snap.state is SessionState.GAMEOVER:
            self._render_gameover(surface, snap)
        else:
            self._render_playing(surface, snap, now_s=now_s)

    def _render_menu(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        _fill_gradient(surface, BG_TOP, BG_BOTTOM)
        pygame.draw.circle(surface, PRIMARY, (w // 2, h // 3), 60, 3)
        title = self._title_font.render("Star Defender", True, TEXT_MAIN)
        surface.blit(title, title.get_rect(center=(w // 2, h // 3 + 110)))
        sub = self._small_font.render("ARITHMETIC GUARDIAN", True, TEXT_MUTED)
        surface.blit(sub, sub.get_rect(center=(w // 2, h // 3 + 155)))
        hint = self._big_font.render("Press Enter to start", True, PRIMARY)
        surface.blit(hint, hint.get_rect(center=(w // 2, int(h * 0.7))))

    def _render_gameover(self, surface: pygame.Surface, snap: DefenseSnapshot) -> None:
        w, h = surface.get_size()
        _fill_gradient(surface, (42, 15, 27), (15, 23, 42))
        title = self._title_font.render("Mission Failed", True, ACCENT)
        surface.blit(title, title.get_rect(center=(w // 2, h // 3)))
        score = self._big_font.render(f"Final score: {snap.score}", True, TEXT_MAIN)
        surface.blit(score, score.get_rect(center=(w // 2, h // 3 + 70)))
        best = self._small_font.render(f"Best: {snap.best_score}", True, TEXT_MUTED)
        surface.blit(best, best.get_rect(center=(w // 2, h // 3 + 115)))
        hint = self._big_font.render("Press Enter to try again", True, GOLD)
        surface.blit(hint, hint.get_rect(center=(w // 2, int(h * 0.7))))

    def _render_playing(self, surface: pygame.Surface, snap: DefenseSnapshot, *, now_s: float) -> None:
        w, h = surface.get_size()
        layer = pygame.Surface((w, h))
        _fill_gradient(layer, BG_TOP, BG_BOTTOM)
        for x, y, size, shade in self._stars:
            pygame.draw.circle(layer, (shade, shade, shade), (x, y), size)

        field = _play_field(surface)
        self._draw_hud(layer, snap)
        for entity in snap.live_entities:
            self._draw_meteor(layer, field, entity, snap.now_ms)
        self._draw_core(layer, field, snap.input_buffer)
        self._effects.draw(layer, now_s=now_s, font=self._big_font, combo=snap.combo)

        offset = self._effects.shake_offset(now_s)
        surface.fill(BG_TOP)
        surface.blit(layer, (offset, offset))

        hint = self._small_font.render("0-9: answer  |  Backspace: delete  |  C: clear  |  Esc: leave", True, TEXT_MUTED)
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 12)))

    def _draw_hud(self, surface: pygame.Surface, snap: DefenseSnapshot) -> None:
        w, _ = surface.get_size()
        label = self._small_font.render("SCORE", True, PRIMARY)
        surface.blit(label, label.get_rect(midtop=(w // 2, 10)))
        score = self._big_font.render(str(snap.score), True, TEXT_MAIN)
        surface.blit(score, score.get_rect(midtop=(w // 2, 28)))

        level = self._small_font.render(f"LV {snap.level + 1}", True, TEXT_MUTED)
        surface.blit(level, (16, 18))

        starting = snap.starting_lives
        for i in range(starting):
            color = ACCENT if i < snap.lives else (40, 40, 48)
            cx = w - 24 - (starting - 1 - i) * 26
            pygame.draw.circle(surface, color, (cx, 28), 9)

    def _draw_meteor(self, surface: pygame.Surface, field: pygame.Rect, entity: Entity, now_ms: int) -> None:
        cx, cy = _meteor_center(field, entity.horizontal_position, entity.progress(now_ms))
        text = self._meteor_font.render(entity.text, True, TEXT_MAIN)
        box = text.get_rect(center=(int(cx), int(cy))).inflate(20, 12)
        pygame.draw.rect(surface, (0, 0, 0), box, border_radius=12)
        border = ACCENT if entity.type is EntityType.BOSS else GOLD if entity.type is EntityType.FAST else (90, 90, 110)
        pygame.draw.rect(surface, border, box, 2 if entity.type is EntityType.BOSS else 1, border_radius=12)
        surface.blit(text, text.get_rect(center=box.center))

    def _draw_core(self, surface: pygame.Surface, field: pygame.Rect, buffer: str) -> None:
        center = (field.centerx, field.bottom + 60)
        pygame.draw.circle(surface, PRIMARY, center, 45, 1)
        pygame.draw.circle(surface, PRIMARY, center, 35, 2)
        pygame.draw.circle(surface, (2, 6, 23), center, 30)
        if buffer:
            text = self._big_font.render(buffer, True, TEXT_MAIN)
            surface.blit(text, text.get_rect(center=center))
        elif (pygame.time.get_ticks() // 500) % 2 == 0:
            pygame.draw.line(surface, PRIMARY, (center[0], center[1] - 10), (center[0], center[1] + 10), 2)


def _play_field(surface: pygame.Surface) -> pygame.Rect:
    w, h = surface.get_size()
    top = 70
    bottom = max(top + 100, h - HIT_ZONE_FROM_BOTTOM + 100)
    return pygame.Rect(10, top, max(METEOR_W + 20, w - 20), bottom - top)


def _meteor_center(field: pygame.Rect, x: float, progress: float) -> tuple[float, float]:
    cx = field.x + x * (field.w - METEOR_W) + METEOR_W / 2
    cy = field.y + progress * field.h
    return cx, cy


def _fill_gradient(surface: pygame.Surface, top: tuple[int, int, int], bottom: tuple[int, int, int]) -> None:
    w, h = surface.get_size()
    bands = 32
    band_h = max(1, math.ceil(h / bands))
    for i in range(bands):
        t = i / (bands - 1)
        color = tuple(int(a + (b - a) * t) for a, b in zip(top, bottom))
        pygame.draw.rect(surface, color, (0, i * band_h, w, band_h))


def _make_stars(rng: random.Random, *, app_size: tuple[int, int]) -> list[tuple[int, int, int, int]]:
    w, h = app_size
    return [
        (rng.randrange(w), rng.randrange(h), rng.randint(1, 2), int(255 * rng.uniform(0.3, 1.0)))
        for _ in range(60)
    ]


def _rumble_joysticks() -> None:
    # Closest desktop equivalent to a phone's error haptic.
    for i in range(pygame.joystick.get_count()):
        try:
            pygame.joystick.Joystick(i).rumble(0.4, 0.8, 200)
        except pygame.error:
            continue


def _init_joysticks() -> None:
    # Safe on platforms with no joystick support.
    try:
        count = pygame.joystick.get_count()
    except pygame.error:
        return

    for i in range(count):
        try:
            js = pygame.joystick.Joystick(i)
            js.init()
        except pygame.error:
            continue


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    config: DefenseConfig | None = None,
) -> int:
    cfg = config if config is not None else DefenseConfig.from_env()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    pygame.init()
    _init_joysticks()

    pygame.display.set_caption("Arithmetic Defense")
    surface = pygame.display.set_mode(cfg.window_size, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()
    games_played = 0

    def open_defense() -> None:
        nonlocal games_played
        # First game uses the configured seed so a run can be reproduced.
        game_cfg = dataclasses.replace(cfg, seed=cfg.seed + games_played)
        games_played += 1
        app.push(
            DefenseScreen(
                app,
                engine_factory=lambda: DefenseGame(clock=real_clock, config=game_cfg),
                clock=real_clock,
            )
        )

    main_items = [
        MenuItem("Arithmetic Defense", open_defense),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Mini Games", main_items, is_root=True))
    logger.info(f"starting shell (seed={cfg.seed})")

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(cfg.target_fps)
    finally:
        pygame.quit()

    return 0
