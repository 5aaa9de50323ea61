import pytest

from seedguard.errors import ConfigurationError, ParseError
from seedguard.installer import (
    disable_cloud_init,
    has_gadget_cloud_conf,
    install_config,
    install_seed_config_dir,
)
from seedguard.lib.env import writable_defaults_dir
from seedguard.model import TrustGrade

GADGET_CONF = "datasource_list: [MAAS]\ndatasource:\n  MAAS:\n    metadata_url: http://maas\n"


@pytest.fixture
def layout(tmp_path):
    target = tmp_path / "target"
    target.mkdir()

    gadget = tmp_path / "gadget"
    gadget.mkdir()
    (gadget / "cloud.conf").write_text(GADGET_CONF, encoding="utf-8")

    seed = tmp_path / "seed"
    seed.mkdir()
    (seed / "foo.cfg").write_text("users: [{name: foo}]\n", encoding="utf-8")
    (seed / "bar.cfg").write_text("hostname: bar\n", encoding="utf-8")
    (seed / "README").write_text("not config\n", encoding="utf-8")

    cfg_dir = writable_defaults_dir(target) / "etc/cloud/cloud.cfg.d"
    return target, gadget, seed, cfg_dir


def listing(cfg_dir):
    if not cfg_dir.exists():
        return []
    return sorted(p.name for p in cfg_dir.iterdir())


def test_missing_target_dir_is_fatal(layout):
    _, gadget, seed, _ = layout
    with pytest.raises(ConfigurationError):
        install_config("dangerous", target_root="", gadget_dir=gadget, seed_dir=seed)


def test_disallowed_writes_disable_file_only(layout):
    target, gadget, seed, cfg_dir = layout

    report = install_config("secured", target_root=target, gadget_dir=gadget, seed_dir=seed, allow_cloud_init=False)

    assert report.disabled is True
    assert report.installed == ()
    disabled = writable_defaults_dir(target) / "etc/cloud/cloud-init.disabled"
    assert disabled.exists()
    assert disabled.read_bytes() == b""
    assert listing(cfg_dir) == []


def test_disallowed_ignores_unknown_grade(layout):
    target, _, _, _ = layout
    report = install_config("bogus", target_root=target, allow_cloud_init=False)
    assert report.disabled is True


@pytest.mark.parametrize("grade", ["secured", TrustGrade.SECURED])
def test_secured_installs_gadget_but_never_seed(layout, grade):
    target, gadget, seed, cfg_dir = layout

    report = install_config(grade, target_root=target, gadget_dir=gadget, seed_dir=seed)

    assert listing(cfg_dir) == ["80_device_gadget.cfg"]
    assert (cfg_dir / "80_device_gadget.cfg").read_text(encoding="utf-8") == GADGET_CONF
    assert report.gadget_datasources.explicitly_allowed == ("MAAS",)
    assert report.grade is TrustGrade.SECURED


def test_secured_without_gadget_installs_nothing(layout):
    target, _, seed, cfg_dir = layout
    report = install_config("secured", target_root=target, seed_dir=seed)
    assert report.installed == ()
    assert listing(cfg_dir) == []


def test_signed_does_not_install_seed_config(layout):
    target, gadget, seed, cfg_dir = layout
    install_config("signed", target_root=target, gadget_dir=gadget, seed_dir=seed)
    assert listing(cfg_dir) == ["80_device_gadget.cfg"]


def test_dangerous_installs_gadget_and_all_seed_config(layout):
    target, gadget, seed, cfg_dir = layout

    report = install_config("dangerous", target_root=target, gadget_dir=gadget, seed_dir=seed)

    assert listing(cfg_dir) == ["80_device_gadget.cfg", "90_bar.cfg", "90_foo.cfg"]
    assert [p.name for p in report.installed] == ["80_device_gadget.cfg", "90_bar.cfg", "90_foo.cfg"]
    assert (cfg_dir / "90_foo.cfg").read_text(encoding="utf-8") == "users: [{name: foo}]\n"


def test_dangerous_without_gadget(layout):
    target, _, seed, cfg_dir = layout
    install_config("dangerous", target_root=target, seed_dir=seed)
    assert listing(cfg_dir) == ["90_bar.cfg", "90_foo.cfg"]


def test_nothing_to_install_is_a_noop(layout):
    target, _, _, cfg_dir = layout
    report = install_config("dangerous", target_root=target)
    assert report.installed == ()
    assert not cfg_dir.exists()


def test_unknown_grade_is_fatal_and_installs_nothing(layout):
    target, gadget, seed, cfg_dir = layout
    with pytest.raises(ConfigurationError):
        install_config("permissive", target_root=target, gadget_dir=gadget, seed_dir=seed)
    with pytest.raises(ConfigurationError):
        install_config(None, target_root=target, gadget_dir=gadget, seed_dir=seed)
    assert listing(cfg_dir) == []


def test_malformed_gadget_config_is_not_copied(layout):
    target, gadget, seed, cfg_dir = layout
    (gadget / "cloud.conf").write_text("datasource: [oops\n", encoding="utf-8")

    with pytest.raises(ParseError):
        install_config("dangerous", target_root=target, gadget_dir=gadget, seed_dir=seed)
    assert not (cfg_dir / "80_device_gadget.cfg").exists()


def test_existing_files_are_kept(layout):
    target, gadget, seed, cfg_dir = layout
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "05_existing.cfg").write_text("keep: me\n", encoding="utf-8")

    install_config("dangerous", target_root=target, gadget_dir=gadget, seed_dir=seed)
    install_config("dangerous", target_root=target, gadget_dir=gadget, seed_dir=seed)

    assert listing(cfg_dir) == ["05_existing.cfg", "80_device_gadget.cfg", "90_bar.cfg", "90_foo.cfg"]


def test_dry_run_writes_nothing(layout):
    target, gadget, seed, cfg_dir = layout

    report = install_config("dangerous", target_root=target, gadget_dir=gadget, seed_dir=seed, dry_run=True)

    assert len(report.installed) == 3
    assert not writable_defaults_dir(target).exists()


def test_has_gadget_cloud_conf(tmp_path):
    assert has_gadget_cloud_conf(None) is False
    assert has_gadget_cloud_conf(tmp_path) is False
    (tmp_path / "cloud.conf").write_text("{}\n", encoding="utf-8")
    assert has_gadget_cloud_conf(tmp_path) is True
    assert has_gadget_cloud_conf(str(tmp_path)) is True


def test_install_seed_config_dir_with_custom_prefix(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.cfg").write_text("a: 1\n", encoding="utf-8")

    out = install_seed_config_dir(src, tmp_path / "root", prefix="50_")

    assert [p.name for p in out] == ["50_a.cfg"]
    assert (tmp_path / "root/etc/cloud/cloud.cfg.d/50_a.cfg").read_text(encoding="utf-8") == "a: 1\n"


def test_disable_cloud_init_is_idempotent(tmp_path):
    p1 = disable_cloud_init(tmp_path)
    p2 = disable_cloud_init(tmp_path)
    assert p1 == p2 == tmp_path / "etc/cloud/cloud-init.disabled"
    assert p1.exists()
