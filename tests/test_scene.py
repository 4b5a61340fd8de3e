"""Tests for the frame loop and the scene renderers."""

import io
import threading

import pytest
from rich.console import Console

from replicube.colors import DEFAULT_COLOR, NAMED_COLORS
from replicube.grid import build_grid
from replicube.scene import CubeGeometry, FrameLoop, RecordingScene, SceneAdapter
from replicube.script_engine import Mode, ScriptEngine
from replicube.terminal import TerminalScene

red = NAMED_COLORS["red"]
blue = NAMED_COLORS["blue"]


@pytest.fixture
def grid():
    return build_grid(3, 0.2, 0.01)


class TestRecordingScene:
    def test_is_a_scene_adapter(self):
        assert isinstance(RecordingScene(), SceneAdapter)
        assert isinstance(TerminalScene(), SceneAdapter)

    def test_unregistered_drawable(self):
        scene = RecordingScene()
        with pytest.raises(KeyError):
            scene.set_appearance("cube 0 0 0", (1, 0, 0), 1.0)

    def test_duplicate_registration(self):
        scene = RecordingScene()
        scene.register_drawable("a", CubeGeometry(0.2))
        with pytest.raises(ValueError):
            scene.register_drawable("a", CubeGeometry(0.2))


class TestFrameLoop:
    def test_registers_every_cell_once(self, grid):
        scene = RecordingScene()
        loop = FrameLoop(grid, scene)

        loop.step()
        loop.step()
        assert set(scene.drawables) == {c.name for c in grid}
        assert scene.drawables["cube 0 0 0"].geometry == CubeGeometry(0.2)
        assert scene.frames == 2
        assert loop.frame == 2

    def test_pushes_only_changed_appearance(self, grid):
        scene = RecordingScene()
        loop = FrameLoop(grid, scene)

        loop.step()
        assert scene.appearance_updates == 27
        assert scene.drawables["cube 1 1 1"].color == DEFAULT_COLOR.rgb

        loop.step()
        assert scene.appearance_updates == 27

        grid.set_color(grid.lookup("cube 1 1 1"), red)
        loop.step()
        assert scene.appearance_updates == 28
        assert scene.drawables["cube 1 1 1"].color == (1.0, 0.0, 0.0)
        assert scene.drawables["cube 1 1 1"].opacity == 1.0

    def test_transforms_follow_rotation(self, grid):
        scene = RecordingScene()
        loop = FrameLoop(grid, scene)

        loop.step()
        corner = scene.drawables["cube 0 0 0"]
        assert corner.orientation == pytest.approx((0.0, 0.01, 0.0))
        assert corner.position != pytest.approx(grid.lookup("cube 0 0 0").base_position)

    def test_reentry_is_rejected(self, grid):
        class ReentrantScene(RecordingScene):
            reenter = True

            def render_frame(self):
                super().render_frame()
                if self.reenter:
                    self.reenter = False
                    loop.step()

        loop = FrameLoop(grid, ReentrantScene())
        with pytest.raises(RuntimeError, match="re-entered"):
            loop.step()

        # the guard is released after the failure
        loop.step()
        assert loop.scene.frames == 2

    def test_run_frame_count(self, grid):
        scene = RecordingScene()
        loop = FrameLoop(grid, scene)

        assert loop.run(fps=1000, frames=5) == 5
        assert scene.frames == 5

    def test_run_stops_on_event(self, grid):
        stop = threading.Event()

        class StoppingScene(RecordingScene):
            def render_frame(self):
                super().render_frame()
                if self.frames == 3:
                    stop.set()

        scene = StoppingScene()
        assert FrameLoop(grid, scene).run(fps=1000, stop_event=stop) == 3


class TestTerminalScene:
    def make_scene(self, **kwargs):
        console = Console(
            file=io.StringIO(),
            width=120,
            color_system="truecolor",
            force_terminal=True,
        )
        return TerminalScene(extent=1.0, rows=21, console=console, **kwargs)

    def test_draws_cell_at_center(self):
        scene = self.make_scene()
        scene.register_drawable("a", CubeGeometry(0.2))
        scene.set_transform("a", (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
        scene.set_appearance("a", (1.0, 0.0, 0.0), 1.0)

        canvas = scene.rasterize()
        style = canvas[10][20]
        assert style is not None
        assert style.endswith("0000")
        assert canvas[0][0] is None

    def test_transparent_cells_are_skipped(self):
        scene = self.make_scene()
        scene.register_drawable("a", CubeGeometry(0.2))
        scene.set_appearance("a", (1.0, 0.0, 0.0), 0.0)

        assert all(style is None for row in scene.rasterize() for style in row)

    def test_nearer_cell_wins(self):
        scene = self.make_scene()
        cells = [("near", 0.5, (1.0, 0.0, 0.0)), ("far", -0.5, (0.0, 0.0, 1.0))]
        for name, z, color in cells:
            scene.register_drawable(name, CubeGeometry(0.2))
            scene.set_transform(name, (0.0, 0.0, z), (0.0, 0.0, 0.0))
            scene.set_appearance(name, color, 1.0)

        assert scene.rasterize()[10][20].endswith("0000")

    def test_bad_script_color_never_reaches_the_renderer(self, tmp_path, grid):
        path = tmp_path / "cube.py"
        path.write_text("Color('red', 0, 0)\n")
        scene = self.make_scene()
        loop = FrameLoop(grid, scene)
        loop.register()

        assert not ScriptEngine(grid).reload(path, Mode.UNIFORM).ok
        loop.step()
        scene.compose()
        assert all(d.color == DEFAULT_COLOR.rgb for d in scene.drawables.values())

    def test_live_rendering(self):
        scene = self.make_scene(title="cube.py")
        scene.register_drawable("a", CubeGeometry(0.5))
        scene.set_appearance("a", (0.0, 1.0, 0.0), 1.0)
        scene.status = "cube.py: 1/1 cells changed"

        scene.start()
        scene.render_frame()
        scene.stop()

        output = scene.console.file.getvalue()
        assert scene.frames == 1
        assert "cube.py" in output
        assert "█" in output

    def test_frame_loop_drives_terminal_scene(self, grid):
        scene = self.make_scene()
        grid.fill(blue)

        FrameLoop(grid, scene).run(fps=1000, frames=2)
        assert scene.frames == 2
        assert any(style is not None for row in scene.rasterize() for style in row)
