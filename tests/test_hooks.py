import os

from ailog_cli.hooks import BACKUP_SUFFIX, HOOK_MARKER, hook_status, hooks_dir, install_hooks


class TestInstallHooks:
    def test_fresh_install(self, git_dir):
        actions = install_hooks(git_dir)
        assert actions == {"pre-commit": "installed", "post-commit": "installed"}
        for name in actions:
            path = hooks_dir(git_dir) / name
            assert HOOK_MARKER in path.read_text(encoding="utf-8")
            assert os.access(path, os.X_OK)

    def test_scripts_never_fail_the_commit(self, git_dir):
        install_hooks(git_dir)
        for name in ("pre-commit", "post-commit"):
            script = (hooks_dir(git_dir) / name).read_text(encoding="utf-8")
            assert script.startswith("#!/bin/sh")
            assert script.rstrip().endswith("exit 0")
            assert "python3 -m ailog_cli" in script

    def test_reinstall_updates(self, git_dir):
        install_hooks(git_dir)
        assert install_hooks(git_dir) == {"pre-commit": "updated", "post-commit": "updated"}
        assert not list(hooks_dir(git_dir).glob("*" + BACKUP_SUFFIX))

    def test_foreign_hook_is_backed_up(self, git_dir):
        directory = hooks_dir(git_dir)
        directory.mkdir(exist_ok=True)
        (directory / "pre-commit").write_text("#!/bin/sh\nmake lint\n", encoding="utf-8")

        actions = install_hooks(git_dir)
        assert actions["pre-commit"].startswith("installed (previous hook saved as")
        backup = directory / ("pre-commit" + BACKUP_SUFFIX)
        assert backup.read_text(encoding="utf-8") == "#!/bin/sh\nmake lint\n"

    def test_status(self, git_dir):
        assert hook_status(git_dir) == {"pre-commit": False, "post-commit": False}
        install_hooks(git_dir)
        assert hook_status(git_dir) == {"pre-commit": True, "post-commit": True}

    def test_status_ignores_foreign_hooks(self, git_dir):
        directory = hooks_dir(git_dir)
        directory.mkdir(exist_ok=True)
        (directory / "post-commit").write_text("#!/bin/sh\n", encoding="utf-8")
        assert hook_status(git_dir)["post-commit"] is False
