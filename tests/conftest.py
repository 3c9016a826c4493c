import pytest
from pathlib import Path

# Chart layout modelled on a bitnami-style mysql chart
CHART_YAML = """\
apiVersion: v2
name: mysql
version: 6.14.2
appVersion: 8.0.20
description: Fast, reliable, scalable, and easy to use open-source relational database system.
"""

VALUES_YAML = """\
service:
  name: mysql
  type: ClusterIP
  port: 3306
  nodePort:
    master:
    slave:
  loadBalancerIP:
    master:
    slave:
  annotations: {}

metrics:
  enabled: false
  service:
    port: 9104
    annotations:
      prometheus.io/scrape: "true"
      prometheus.io/port: "9104"

config:
  enabled: true
  myCnf: |-
    [mysqld]
    max_connections=100

users:
  app: s3cret
  admin: hunter2
"""

HELPERS_TPL = """\
{{/* Expand the name of the chart. */}}
{{- define "mysql.name" -}}
{{- default .Chart.Name .Values.nameOverride | trunc 63 | trimSuffix "-" -}}
{{- end -}}

{{/* Common labels */}}
{{- define "mysql.labels" -}}
app: {{ include "mysql.name" . }}
chart: {{ .Chart.Name }}-{{ .Chart.Version }}
release: {{ .Release.Name }}
{{- end -}}

{{- define "mysql.matchLabels" -}}
app: {{ include "mysql.name" . }}
release: {{ .Release.Name }}
{{- end -}}

{{/* Renders a value that may itself contain template directives. */}}
{{- define "mysql.tplValue" -}}
    {{- if typeIs "string" .value }}
        {{- tpl .value .context }}
    {{- else }}
        {{- tpl (.value | toYaml) .context }}
    {{- end }}
{{- end -}}
"""

MASTER_SVC_YAML = """\
apiVersion: v1
kind: Service
metadata:
  name: {{ .Values.service.name }}
  labels: {{- include "mysql.labels" . | nindent 4 }}
    component: master
  {{- if or .Values.service.annotations .Values.metrics.service.annotations }}
  annotations:
  {{- if .Values.service.annotations }}
  {{- include "mysql.tplValue" ( dict "value" .Values.service.annotations "context" $) | nindent 4 }}
  {{- end }}
  {{- if .Values.metrics.service.annotations }}
  {{- include "mysql.tplValue" ( dict "value" .Values.metrics.service.annotations "context" $) | nindent 4 }}
  {{- end }}
  {{- end }}
spec:
  type: {{ .Values.service.type }}
  {{- if and (eq .Values.service.type "LoadBalancer") (not (empty .Values.service.loadBalancerIP)) }}
  {{- if not (empty .Values.service.loadBalancerIP.master) }}
  loadBalancerIP: {{ .Values.service.loadBalancerIP.master }}
  {{- end }}
  {{- end }}
  ports:
    - name: mysql
      port: {{ .Values.service.port }}
      targetPort: mysql
      {{- if and (or (eq .Values.service.type "NodePort") (eq .Values.service.type "LoadBalancer")) (not (empty .Values.service.nodePort)) }}
      nodePort: {{ .Values.service.nodePort.master }}
      {{- else if eq .Values.service.type "ClusterIP" }}
      nodePort: null
      {{- end }}
    {{- if .Values.metrics.enabled }}
    - name: metrics
      port: {{ .Values.metrics.service.port }}
      targetPort: metrics
    {{- end }}
  selector: {{- include "mysql.matchLabels" . | nindent 4 }}
    component: master
"""

CONFIGMAP_YAML = """\
{{- if .Values.config.enabled }}
apiVersion: v1
kind: ConfigMap
metadata:
  name: {{ include "mysql.name" . }}-config
  namespace: {{ .Release.Namespace }}
data:
  my.cnf: |-
{{ .Values.config.myCnf | indent 4 }}
{{- end }}
"""

SECRETS_YAML = """\
{{- range $name, $password := .Values.users }}
---
apiVersion: v1
kind: Secret
metadata:
  name: {{ printf "%s-%s" (include "mysql.name" $) $name }}
type: Opaque
data:
  password: {{ $password | b64enc | quote }}
{{- end }}
"""

NOTES_TXT = "Thanks for installing {{ .Chart.Name }}.\n"


def write_chart(root: Path, templates: dict = None) -> Path:
    """Lays a chart directory out under `root` and returns its path."""
    chart_dir = root / "mysql"
    templates_dir = chart_dir / "templates"
    templates_dir.mkdir(parents=True)
    (chart_dir / "Chart.yaml").write_text(CHART_YAML)
    (chart_dir / "values.yaml").write_text(VALUES_YAML)

    files = {
        "_helpers.tpl": HELPERS_TPL,
        "master-svc.yaml": MASTER_SVC_YAML,
        "configmap.yaml": CONFIGMAP_YAML,
        "secrets.yaml": SECRETS_YAML,
        "NOTES.txt": NOTES_TXT,
    }
    files.update(templates or {})
    for name, body in files.items():
        (templates_dir / name).write_text(body)
    return chart_dir


@pytest.fixture
def chart_dir(tmp_path):
    return write_chart(tmp_path)
