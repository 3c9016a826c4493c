import pytest
from ruamel.yaml import YAML

from conftest import write_chart
from kuberender.cli.main import KubeRenderCLI, main


def run(*argv):
    return KubeRenderCLI().run(list(argv))


def test_render_prints_manifest_to_stdout(chart_dir, capsys):
    assert run("render", str(chart_dir), "--name", "my-db") == 0
    out = capsys.readouterr().out
    documents = [d for d in YAML(typ="safe").load_all(out) if d is not None]
    assert [d["kind"] for d in documents] == ["ConfigMap", "Service", "Secret", "Secret"]
    assert "# Source: mysql/templates/master-svc.yaml" in out


def test_render_without_source_comments(chart_dir, capsys):
    assert run("render", str(chart_dir), "--no-source-comments") == 0
    assert "# Source:" not in capsys.readouterr().out


def test_render_with_overrides(chart_dir, tmp_path, capsys):
    values_file = tmp_path / "values-prod.yaml"
    values_file.write_text("service:\n  name: mysql-prod\n")
    code = run("render", str(chart_dir), "-f", str(values_file), "--set", "service.port=3307")
    assert code == 0
    out = capsys.readouterr().out
    assert "name: mysql-prod" in out
    assert "port: 3307" in out


def test_render_to_output_dir(chart_dir, tmp_path, capsys):
    out_dir = tmp_path / "rendered"
    assert run("render", str(chart_dir), "-o", str(out_dir)) == 0
    assert (out_dir / "mysql" / "templates" / "master-svc.yaml").exists()
    assert capsys.readouterr().out == ""


def test_render_error_exit_code(tmp_path, capsys):
    chart_dir = write_chart(tmp_path, {"broken.yaml": "value: {{ .Values.not.there }}\n"})
    assert run("render", str(chart_dir)) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert ".Values.not.there" in captured.err


def test_malformed_output_is_not_emitted(tmp_path, capsys):
    chart_dir = write_chart(tmp_path, {"zz-bad.yaml": "apiVersion: v1\nkind: [oops\n"})
    assert run("render", str(chart_dir)) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Malformed document 4" in captured.err


def test_bad_set_expression(chart_dir, capsys):
    assert run("render", str(chart_dir), "--set", "novalue") == 1
    assert "novalue" in capsys.readouterr().err


def test_missing_chart(tmp_path):
    assert run("render", str(tmp_path / "missing")) == 1


def test_lint(chart_dir, capsys):
    assert run("lint", str(chart_dir)) == 0
    assert run("lint", str(chart_dir), "--strict") == 1
    assert "metadata.namespace" in capsys.readouterr().err


def test_values_command_prints_yaml_to_stdout(chart_dir, capsys):
    assert run("values", str(chart_dir), "--set", "service.type=NodePort") == 0
    captured = capsys.readouterr()
    merged = YAML(typ="safe").load(captured.out)
    assert merged["service"]["type"] == "NodePort"
    assert merged["service"]["port"] == 3306
    assert "--set" in captured.err


def test_values_template_with_context(chart_dir, tmp_path, capsys):
    template = tmp_path / "service.j2.yaml"
    template.write_text(
        "service:\n  annotations:\n"
        "    external-dns.alpha.kubernetes.io/hostname: \"{{ wildcard_managed_dns }}\"\n"
    )
    context_file = tmp_path / "cluster.yaml"
    context_file.write_text("wildcard_managed_dns: \"*.eu.example.com\"\n")

    assert run("values", str(chart_dir), "-f", str(template), "--context-file", str(context_file)) == 0
    merged = YAML(typ="safe").load(capsys.readouterr().out)
    assert merged["service"]["annotations"] == {"external-dns.alpha.kubernetes.io/hostname": "*.eu.example.com"}

    assert run("render", str(chart_dir), "-f", str(template), "--context", "wildcard_managed_dns=db.example.com") == 0
    assert "external-dns.alpha.kubernetes.io/hostname: db.example.com" in capsys.readouterr().out

    assert run("render", str(chart_dir), "-f", str(template)) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "wildcard_managed_dns" in captured.err


def test_no_command_prints_help(capsys):
    assert run() == 0
    assert "usage: kuberender" in capsys.readouterr().out


def test_main_exits_with_status(chart_dir):
    with pytest.raises(SystemExit) as excinfo:
        main(["render", str(chart_dir), "--set", "service=flat"])
    assert excinfo.value.code == 1
