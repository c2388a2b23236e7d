from tkinter import filedialog

import customtkinter as ctk
from PIL import UnidentifiedImageError

from .config import (
    APP_TITLE,
    APPDATA_DIR,
    AVATAR_SIZE_PX,
    RECENT_SESSIONS_SHOWN,
    UI_UPDATE_INTERVAL_MS,
)
from .avatar import AvatarCache, encode_avatar
from .clock import SystemClock
from .controller import FocusSnapshot, SessionController
from .logging_setup import setup_logger
from .models import Badge, FocusMode
from .profile import ProfileAggregator
from .reminders import TimerReminderScheduler
from .rewards import RewardEngine
from .session_store import JsonSessionStore
from .tray import TrayController
from .utils import ensure_dir, format_duration


ctk.set_appearance_mode("Dark")
ctk.set_default_color_theme("blue")

MODE_COLORS = {
    FocusMode.WORK: ("#2471a3", "#2e86c1"),
    FocusMode.PLAY: ("#229954", "#28b463"),
    FocusMode.REST: ("#ca6f1e", "#dc7633"),
    FocusMode.SLEEP: ("#7d3c98", "#8e44ad"),
}


class UserFocusApp:
    def __init__(self):
        ensure_dir(APPDATA_DIR)

        self.logger = setup_logger()
        self.logger.info("App start")

        self.root = ctk.CTk()
        self.root.title(APP_TITLE)
        self.root.geometry("420x720")
        self.root.minsize(420, 720)
        self.root.protocol("WM_DELETE_WINDOW", self.hide_to_tray)

        self._hidden = False
        self._avatar_cache = AvatarCache()
        self._avatar_ctk = None

        clock = SystemClock()
        self.store = JsonSessionStore(APPDATA_DIR, self.logger)
        self.profile = ProfileAggregator(self.store, self.logger)
        self.profile.load()

        self.tray = TrayController(
            title=APP_TITLE,
            on_show=self.show_from_tray,
            on_quit=self.quit_app,
            logger=self.logger,
        )
        self.reminders = TimerReminderScheduler(self.tray.notify, clock, self.logger)

        self.controller = SessionController(
            store=self.store,
            profile=self.profile,
            reminders=self.reminders,
            rewards=RewardEngine(clock=clock),
            clock=clock,
            logger=self.logger,
            on_update=self._on_controller_update,
            on_award=self._on_award,
        )

        self._build_ui()
        self._refresh(self.controller.snapshot())
        self.controller.restore()
        self.root.after(UI_UPDATE_INTERVAL_MS, self._poll)

    # UI
    def _build_ui(self) -> None:
        self.header = ctk.CTkLabel(self.root, text="Focus Mode", font=("Roboto", 26, "bold"))
        self.header.pack(pady=(18, 8))

        # Mode picker, shown while idle
        self.frame_modes = ctk.CTkFrame(self.root)
        self.mode_buttons = {}
        for i, mode in enumerate(FocusMode):
            color, hover = MODE_COLORS[mode]
            btn = ctk.CTkButton(
                self.frame_modes,
                text=mode.value,
                height=110,
                font=("Arial", 20, "bold"),
                fg_color=color,
                hover_color=hover,
                command=lambda m=mode: self.start_focus(m),
            )
            btn.grid(row=i // 2, column=i % 2, padx=10, pady=10, sticky="nsew")
            self.mode_buttons[mode] = btn
        self.frame_modes.grid_columnconfigure(0, weight=1)
        self.frame_modes.grid_columnconfigure(1, weight=1)

        # Running session, shown while active
        self.frame_active = ctk.CTkFrame(self.root)
        self.mode_label = ctk.CTkLabel(self.frame_active, text="", font=("Arial", 28, "bold"))
        self.mode_label.pack(pady=(16, 4))
        self.elapsed_label = ctk.CTkLabel(self.frame_active, text="00:00", font=("Courier", 56, "bold"))
        self.elapsed_label.pack(pady=8)
        self.points_label = ctk.CTkLabel(self.frame_active, text="Points: 0", font=("Arial", 18))
        self.points_label.pack(pady=2)
        self.badges_label = ctk.CTkLabel(self.frame_active, text="", font=("Arial", 22), wraplength=360)
        self.badges_label.pack(pady=(2, 10))
        self.stop_btn = ctk.CTkButton(
            self.frame_active,
            text="Stop Focusing",
            fg_color="#c0392b",
            hover_color="#e74c3c",
            command=self.stop_focus,
        )
        self.stop_btn.pack(padx=12, pady=(4, 16), fill="x")

        # Profile
        self.frame_profile = ctk.CTkFrame(self.root)
        self.frame_profile.pack(side="bottom", padx=18, pady=(8, 12), fill="both", expand=True)

        self.avatar_label = ctk.CTkLabel(self.frame_profile, text="")
        self.avatar_label.grid(row=0, column=0, rowspan=2, padx=12, pady=(12, 6))

        self.name_entry = ctk.CTkEntry(self.frame_profile, placeholder_text="Your Name")
        self.name_entry.grid(row=0, column=1, sticky="ew", padx=12, pady=(12, 4))
        self.name_entry.bind("<Return>", lambda _e: self.save_identity())

        buttons = ctk.CTkFrame(self.frame_profile, fg_color="transparent")
        buttons.grid(row=1, column=1, sticky="ew", padx=12, pady=(0, 6))
        ctk.CTkButton(buttons, text="Save name", width=100, command=self.save_identity).pack(side="left")
        ctk.CTkButton(buttons, text="Change Photo", width=110, command=self.pick_avatar).pack(side="right")

        self.stats_label = ctk.CTkLabel(self.frame_profile, text="", anchor="w", justify="left")
        self.stats_label.grid(row=2, column=0, columnspan=2, sticky="w", padx=12, pady=4)

        self.history_box = ctk.CTkTextbox(self.frame_profile, height=160)
        self.history_box.grid(row=3, column=0, columnspan=2, sticky="nsew", padx=12, pady=(4, 12))
        self.history_box.configure(state="disabled")

        self.frame_profile.grid_columnconfigure(1, weight=1)
        self.frame_profile.grid_rowconfigure(3, weight=1)

        self.name_entry.insert(0, self.profile.profile.name)

    def _show_active(self, active: bool) -> None:
        if active:
            self.frame_modes.pack_forget()
            self.frame_active.pack(padx=18, pady=8, fill="x")
        else:
            self.frame_active.pack_forget()
            self.frame_modes.pack(padx=18, pady=8, fill="x")

    def _refresh(self, snap: FocusSnapshot) -> None:
        self._show_active(snap.is_active)

        session = snap.session
        if session is not None:
            self.mode_label.configure(text=session.mode.value)
            self.elapsed_label.configure(text=snap.elapsed_text)
            self.points_label.configure(text=f"Points: {session.points}")
            emojis = "".join(b.emoji for b in session.badges)
            self.badges_label.configure(text=f"Badges: {emojis}" if emojis else "")

        p = snap.profile
        if self._avatar_ctk is None or self._avatar_cache.changed(p.avatar):
            img = self._avatar_cache.get(p.avatar)
            self._avatar_ctk = ctk.CTkImage(light_image=img, dark_image=img, size=(AVATAR_SIZE_PX, AVATAR_SIZE_PX))
            self.avatar_label.configure(image=self._avatar_ctk)

        stats = self.profile.stats()
        collection = "".join(b.emoji for b in p.badges[-30:])
        self.stats_label.configure(
            text=(
                f"Total Points: {stats['total_points']}    Total Badges: {stats['total_badges']}\n"
                f"Badges Collection: {collection or '(none yet)'}"
            )
        )

        lines = ["Recent Sessions:"]
        recent = self.profile.recent_sessions(RECENT_SESSIONS_SHOWN)
        if not recent:
            lines.append("(none yet)")
        for s in recent:
            started = s.start_time.astimezone().strftime("%b %d, %H:%M")
            badges = "".join(b.emoji for b in s.badges)
            lines.append(
                f"- {s.mode.value} | {started} | {format_duration(s.duration(s.end_time))} | {s.points} pts {badges}"
            )
        content = "\n".join(lines)
        self.history_box.configure(state="normal")
        self.history_box.delete("1.0", "end")
        self.history_box.insert("1.0", content)
        self.history_box.configure(state="disabled")

    def _poll(self) -> None:
        if not self._hidden:
            self._refresh(self.controller.snapshot())
        self.root.after(UI_UPDATE_INTERVAL_MS, self._poll)

    def _on_controller_update(self, snap: FocusSnapshot) -> None:
        # called from the ticker thread too
        if not self._hidden:
            self.root.after(0, lambda: self._refresh(snap))

    def _on_award(self, badges: list[Badge]) -> None:
        self.logger.info(f"UI award {''.join(b.emoji for b in badges)}")

    # Actions
    def start_focus(self, mode: FocusMode) -> None:
        self.controller.start(mode)

    def stop_focus(self) -> None:
        self.controller.stop()

    def save_identity(self) -> None:
        self.controller.update_identity(self.name_entry.get(), self.profile.profile.avatar)

    def pick_avatar(self) -> None:
        path = filedialog.askopenfilename(
            title="Choose a photo",
            filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.bmp *.webp"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            data = encode_avatar(path)
        except (UnidentifiedImageError, OSError):
            self.logger.exception(f"Avatar load failed path={path}")
            return
        self.controller.update_identity(self.name_entry.get(), data)

    # Tray
    def hide_to_tray(self) -> None:
        self.logger.info("Hide to tray")
        self._hidden = True
        self.controller.suspend()
        self.tray.ensure_running()
        self.root.withdraw()

    def show_from_tray(self) -> None:
        self.logger.info("Show from tray")

        def _do():
            self._hidden = False
            self.controller.resume()
            self.root.deiconify()
            self.root.lift()
            self.root.focus_force()
            self._refresh(self.controller.snapshot())

        self.root.after(0, _do)

    def quit_app(self) -> None:
        self.logger.info("Quit requested")
        # the session stays persisted; restore() picks it up on next launch
        self.controller.suspend()
        self.reminders.cancel_all()

        def _do():
            self.tray.stop()
            self.root.destroy()

        self.root.after(0, _do)

    def run(self) -> None:
        self.root.mainloop()
        self.logger.info("App stopped")
