import logging
import re
import tkinter as tk
from tkinter import messagebox, ttk

import sv_ttk

from clinical_records import backend
from clinical_records.background import TkRunner
from clinical_records.config import LOG_LEVEL
from clinical_records.domain import ENCOUNTER_TYPES
from clinical_records.terminology import CodeSearch, search_loinc, search_snomed
from clinical_records.validation import PATIENT_FORM_FIELDS
from clinical_records.viewmodels import (
    DoctorsViewModel, EncounterFormModel, OrganizationsViewModel, PatientsViewModel,
)

logger = logging.getLogger(__name__)

ROUTE_PATIENT = re.compile(r"^/patients/([^/]+)$")

PATIENT_FORM_LABELS = {
    "first_name": "Nombre", "last_name": "Apellido", "date_of_birth": "Fecha de nacimiento (YYYY-MM-DD)",
    "gender": "Género", "identification_type": "Tipo de identificación",
    "identification_country": "País de identificación", "identification_value": "Número de identificación",
    "email": "Email", "phone": "Teléfono", "cellular": "Celular", "neighborhood": "Barrio",
    "street": "Calle", "door_number": "Número de puerta", "apartment_number": "Apartamento",
    "city": "Ciudad", "department": "Departamento", "postal_code": "Código postal",
    "height": "Altura (cm)", "weight": "Peso (kg)",
}
PATIENT_FORM_CHOICES = {
    "gender": ["male", "female", "other", "unknown"],
    "identification_type": ["CI", "PASSPORT", "DRIVER_LICENSE", "OTHER"],
}
DIAGNOSIS_STATUSES = ["active", "recurrence", "relapse", "inactive", "remission", "resolved"]


class HScrollFrame(tk.Frame):
    def __init__(self, master, height=130, **kwargs):
        super().__init__(master, **kwargs)
        self.canvas = tk.Canvas(self, height=height, highlightthickness=0)
        self.hbar = tk.Scrollbar(self, orient="horizontal", command=self.canvas.xview)
        self.canvas.configure(xscrollcommand=self.hbar.set)
        self.canvas.pack(side="top", fill="x", expand=False)
        self.hbar.pack(side="top", fill="x")
        self.inner = tk.Frame(self.canvas)
        self.inner.bind("<Configure>", lambda e: self.canvas.configure(scrollregion=self.canvas.bbox("all")))
        self.canvas.create_window((0, 0), window=self.inner, anchor="nw")


class CodeField:
    """Entry + dropdown listbox bound to a CodeSearch."""

    def __init__(self, master, search_fn, runner, width=18, error_message="Error al buscar códigos"):
        self.var = tk.StringVar()
        self.name = ""
        self.entry = tk.Entry(master, textvariable=self.var, width=width)
        self.results_lb = tk.Listbox(master, height=5, width=48, font=("Consolas", 9))
        self.status = tk.Label(master, text="", fg="gray")
        self.search = CodeSearch(search_fn, self.entry, runner=runner,
                                 on_change=self._render, error_message=error_message)
        self._typing = True
        self.var.trace_add("write", lambda *_: self._on_write())
        self.results_lb.bind("<<ListboxSelect>>", lambda e: self._on_pick())
        self.entry.bind("<FocusOut>", lambda e: self.entry.after(150, self._on_blur))

    def grid(self, row, column, **kw):
        self.entry.grid(row=row, column=column, padx=4, **kw)
        self.status.grid(row=row + 1, column=column, sticky="w")
        self._lb_pos = (row + 2, column)

    def _on_write(self):
        if self._typing:
            self.name = ""
            self.search.on_input(self.var.get())

    def _on_pick(self):
        sel = self.results_lb.curselection()
        if not sel or sel[0] >= len(self.search.results):
            return
        code, name = self.search.select(self.search.results[sel[0]])
        self._typing = False
        self.var.set(code)
        self._typing = True
        self.name = name

    def _on_blur(self):
        if self.entry.winfo_exists() and self.results_lb.focus_get() is not self.results_lb:
            self.search.dismiss()

    def _render(self):
        if not self.entry.winfo_exists():
            return
        s = self.search
        self.status.config(text=s.error or ("Buscando..." if s.is_searching else (self.name or "")))
        self.results_lb.delete(0, tk.END)
        if s.show_results and s.results:
            for r in s.results:
                self.results_lb.insert(tk.END, f"{r.code} | {r.display_name}")
            row, col = self._lb_pos
            self.results_lb.grid(row=row, column=col, columnspan=4, sticky="w", padx=4)
        else:
            self.results_lb.grid_remove()

    def clear(self):
        self._typing = False
        self.var.set("")
        self._typing = True
        self.name = ""
        self.search.dismiss()


class MainInterface:
    def __init__(self, start_route: str = "/"):
        self.root = tk.Tk()
        self.root.title("Sistema de Gestión Médica")
        self.root.geometry("900x520")
        self.root.config(bg="#f0f0f0")
        self.runner = TkRunner(self.root)

        self.patients = PatientsViewModel()
        self.doctors = DoctorsViewModel()
        self.organizations = OrganizationsViewModel()

        tk.Label(self.root, text="Sistema de Gestión Médica", font=("Georgia", 24, "bold"),
                 bg="#f0f0f0", fg="#3498db").pack(pady=20)

        btns = tk.Frame(self.root, bg="#f0f0f0")
        btns.pack(pady=20)
        buttons = [
            {"text": "Pacientes", "command": lambda: self.navigate("/patients")},
            {"text": "Médicos", "command": lambda: self.navigate("/doctors")},
            {"text": "Organizaciones", "command": lambda: self.navigate("/organizations")},
        ]
        for col_val, button in enumerate(buttons):
            tk.Button(btns, text=button["text"], width=15, height=2,
                      font=("Georgia", 14), bg="#ecf0f1", fg="#2ecc71",
                      command=button["command"]).grid(row=0, column=col_val, padx=10, pady=10)

        self.backend_status = tk.Label(self.root, text="Comprobando backend...", bg="#f0f0f0", fg="gray")
        self.backend_status.pack(pady=6)
        self.runner(backend.check_backend, self._show_backend_status, lambda e: self._show_backend_status(str(e)))

        sv_ttk.use_dark_theme()
        self.root.after(0, lambda: self.navigate(start_route))
        self.root.protocol("WM_DELETE_WINDOW", self._close)
        self.root.mainloop()

    def _close(self):
        self.runner.shutdown()
        self.root.destroy()

    def _show_backend_status(self, err):
        text = f"Backend no disponible: {err}" if err else "Backend conectado"
        self.backend_status.config(text=text, fg="#e74c3c" if err else "#2ecc71")

    # routing
    def navigate(self, route: str):
        route = (route or "/").rstrip("/") or "/"
        logger.debug("navigate %s", route)
        if route == "/":
            return
        if route == "/patients":
            return self.open_patients()
        if route == "/doctors":
            return self.open_doctors()
        if route == "/organizations":
            return self.open_organizations()
        m = ROUTE_PATIENT.match(route)
        if m:
            return self.open_patient_detail(m.group(1))
        messagebox.showerror("Ruta desconocida", route)

    # utilities
    def _make_page(self, title: str, width=1000, height=640):
        win = tk.Toplevel(self.root)
        win.title(title)
        win.geometry(f"{width}x{height}")

        top_wrap = HScrollFrame(win, height=130)
        top_wrap.pack(fill="x", padx=8, pady=6)
        top = top_wrap.inner

        mid = tk.Frame(win)
        mid.pack(fill="both", expand=True, padx=8, pady=6)

        lb = tk.Listbox(mid, font=("Consolas", 10))
        ysb = tk.Scrollbar(mid, orient="vertical", command=lb.yview)
        xsb = tk.Scrollbar(mid, orient="horizontal", command=lb.xview)

        lb.configure(yscrollcommand=ysb.set, xscrollcommand=xsb.set)

        ysb.pack(side="right", fill="y")
        xsb.pack(side="bottom", fill="x")
        lb.pack(side="left", fill="both", expand=True)

        return win, top, lb

    def _fill_with_headers(self, lb, headers, rows):
        if not lb.winfo_exists():
            return
        lb.delete(0, tk.END)
        lb.xview_moveto(0.0)
        lb.yview_moveto(0.0)
        header_line = " | ".join(headers)
        lb.insert(tk.END, header_line)
        lb.insert(tk.END, "-" * len(header_line))
        if not rows:
            lb.insert(tk.END, "No results")
            return
        for r in rows:
            lb.insert(tk.END, " | ".join("" if x is None else str(x) for x in r))
        lb.update_idletasks()

    @staticmethod
    def _row_index(lb):
        """Selected data row (header and rule lines excluded) or None."""
        sel = lb.curselection()
        if not sel or sel[0] < 2:
            return None
        return sel[0] - 2

    def _add(self, fn, lb, refresh_fn, headers):
        try:
            fn()
            self._fill_with_headers(lb, headers, refresh_fn())
        except Exception as e:
            messagebox.showerror("Error", str(e))

    def _background(self, fn, on_success, title="Error"):
        self.runner(fn, on_success, lambda e: messagebox.showerror(title, str(e)))

    # ------------------ Patients ------------------
    def open_patients(self):
        win, top, lb = self._make_page("Pacientes")
        vm = self.patients
        shown = []

        p_name = tk.StringVar(); p_id = tk.StringVar()
        tk.Label(top, text="Nombre").grid(row=0, column=0, padx=4)
        tk.Entry(top, textvariable=p_name, width=18).grid(row=0, column=1, padx=4)
        tk.Label(top, text="ID").grid(row=0, column=2, padx=4)
        tk.Entry(top, textvariable=p_id, width=18).grid(row=0, column=3, padx=4)

        headers = ["id", "nombre", "fecha_nacimiento", "género", "fecha_defunción"]

        def show(rows):
            shown[:] = rows
            self._fill_with_headers(lb, headers, [(r.id, r.name, r.birth_date, r.gender, r.death_date or "-")
                                                  for r in rows])

        def render():
            if vm.error:
                lb.delete(0, tk.END)
                lb.insert(tk.END, f"Error: {vm.error}")
                return
            show(backend.patient_search(vm.entities, p_name.get(), p_id.get()))

        def load():
            lb.delete(0, tk.END)
            lb.insert(tk.END, "Cargando pacientes...")
            self.runner(vm.load, lambda _: render(), lambda e: messagebox.showerror("Error", str(e)))

        def open_selected(_event=None):
            i = self._row_index(lb)
            if i is None or i >= len(shown):
                return
            vm.select(shown[i])
            self.navigate(f"/patients/{shown[i].id}")

        tk.Button(top, text="Buscar", command=render).grid(row=0, column=4, padx=6)
        tk.Button(top, text="Recargar", command=load).grid(row=0, column=5, padx=6)
        tk.Button(top, text="Abrir", command=open_selected).grid(row=0, column=6, padx=6)
        tk.Button(top, text="Agregar paciente",
                  command=lambda: self.open_add_patient(on_created=render)).grid(row=0, column=7, padx=6)
        lb.bind("<Double-Button-1>", open_selected)

        load()

    def open_add_patient(self, on_created=None):
        win = tk.Toplevel(self.root)
        win.title("Agregar Nuevo Paciente")
        win.geometry("760x620")

        frm = tk.Frame(win)
        frm.pack(fill="both", expand=True, padx=10, pady=10)

        vars_ = {}
        err_labels = {}
        for i, name in enumerate(PATIENT_FORM_FIELDS):
            r, c = divmod(i, 2)
            tk.Label(frm, text=PATIENT_FORM_LABELS[name]).grid(row=r * 2, column=c * 2, sticky="e", padx=4, pady=2)
            var = tk.StringVar()
            if name in PATIENT_FORM_CHOICES:
                choices = PATIENT_FORM_CHOICES[name]
                var.set(choices[0])
                ttk.Combobox(frm, values=choices, textvariable=var, width=22,
                             state="readonly").grid(row=r * 2, column=c * 2 + 1, padx=4)
            else:
                tk.Entry(frm, textvariable=var, width=26).grid(row=r * 2, column=c * 2 + 1, padx=4)
            err = tk.Label(frm, text="", fg="#e74c3c", font=("Arial", 8))
            err.grid(row=r * 2 + 1, column=c * 2 + 1, sticky="w")
            vars_[name] = var
            err_labels[name] = err
            # clear a field's error as soon as it is edited
            var.trace_add("write", lambda *_, n=name: err_labels[n].config(text=""))

        def do_save():
            form = {k: v.get() for k, v in vars_.items()}

            def saved(errors):
                for name, label in err_labels.items():
                    label.config(text=errors.get(name, ""))
                if errors:
                    return
                if self.patients.error:
                    messagebox.showerror("Error al crear el paciente", self.patients.error)
                    return
                messagebox.showinfo("Guardado", "Paciente creado exitosamente!")
                win.destroy()
                if on_created:
                    on_created()

            self._background(lambda: self.patients.add(form), saved, title="Error al crear el paciente")

        btns = tk.Frame(win)
        btns.pack(pady=8)
        tk.Button(btns, text="Guardar", command=do_save, width=12, bg="#4CAF50", fg="#fff").pack(side="left", padx=6)
        tk.Button(btns, text="Cancelar", command=win.destroy, width=12).pack(side="left", padx=6)

    # ------------------ Patient detail ------------------
    def open_patient_detail(self, patient_id: str):
        win, top, lb = self._make_page("Detalle del Paciente", height=560)
        info = tk.Label(top, text="Cargando paciente...", justify="left", anchor="w", font=("Consolas", 10))
        info.grid(row=0, column=0, columnspan=6, sticky="w", padx=4)

        headers = ["encuentro", "tipo", "inicio", "fin", "obs", "med", "diag", "alerg"]
        state = {"detail": None}

        def show_detail(detail):
            state["detail"] = detail
            info.config(text="\n".join([
                f"{detail.name}   ({detail.id})",
                f"Género: {detail.gender}   Nacimiento: {detail.birth_date}   Defunción: {detail.death_date or '-'}",
                f"Altura: {detail.height} cm   Peso: {detail.weight} kg",
                f"Tel: {detail.phone}   Móvil: {detail.mobile}   Email: {detail.email}",
                f"Dirección: {detail.address}   Barrio: {detail.district}",
            ]))
            death_btn.config(state="disabled" if detail.death_date else "normal")

        def load_detail():
            self._background(lambda: backend.patient_detail(patient_id), show_detail,
                             title="Error al cargar el paciente")

        def load_encounters():
            self._background(lambda: backend.patient_encounters(patient_id),
                             lambda encs: self._fill_with_headers(lb, headers,
                                                                  [backend.encounter_summary(e) for e in encs]))

        def register_death():
            detail = state["detail"]
            if detail is None:
                return
            self.open_death_dialog(detail, on_done=load_detail)

        def new_encounter():
            detail = state["detail"]
            self.open_encounter_form(patient_id, detail.name if detail else patient_id,
                                     on_created=load_encounters)

        btns = tk.Frame(top)
        btns.grid(row=1, column=0, sticky="w", pady=6)
        death_btn = tk.Button(btns, text="Acta de Defunción", command=register_death, state="disabled")
        death_btn.pack(side="left", padx=4)
        tk.Button(btns, text="Nuevo encuentro", command=new_encounter).pack(side="left", padx=4)
        tk.Button(btns, text="Recargar encuentros", command=load_encounters).pack(side="left", padx=4)

        self._fill_with_headers(lb, headers, [])
        load_detail()
        load_encounters()

    def open_death_dialog(self, detail, on_done=None):
        win = tk.Toplevel(self.root)
        win.title("Registrar Fallecimiento")
        win.geometry("460x180")
        tk.Label(win, text=f"Marcar como fallecido a {detail.name}", font=("Arial", 11, "bold")).pack(pady=8)
        when = tk.StringVar()
        row = tk.Frame(win)
        row.pack(pady=4)
        tk.Label(row, text="Fecha y hora (YYYY-MM-DDTHH:MM)").pack(side="left", padx=4)
        tk.Entry(row, textvariable=when, width=20).pack(side="left", padx=4)

        def confirm():
            if not when.get().strip():
                return

            def done(ok):
                if not ok:
                    messagebox.showerror("Error al marcar el paciente como fallecido", self.patients.error)
                    return
                messagebox.showinfo("Guardado", "Paciente marcado como fallecido exitosamente")
                win.destroy()
                if on_done:
                    on_done()

            self._background(lambda: self.patients.mark_deceased(detail.id, when.get()), done,
                             title="Error al marcar el paciente como fallecido")

        btns = tk.Frame(win)
        btns.pack(pady=10)
        tk.Button(btns, text="Confirmar", command=confirm, bg="#e74c3c", fg="#fff").pack(side="left", padx=6)
        tk.Button(btns, text="Cancelar", command=win.destroy).pack(side="left", padx=6)

    # ------------------ Encounter form ------------------
    def open_encounter_form(self, patient_id: str, patient_name: str, on_created=None):
        win = tk.Toplevel(self.root)
        win.title("Crear Encuentro Clínico")
        win.geometry("1000x760")
        form = EncounterFormModel(patient_id)

        tk.Label(win, text=f"Paciente: {patient_name}", font=("Arial", 12, "bold")).pack(pady=6)
        errors_lbl = tk.Label(win, text="", fg="#e74c3c", justify="left")
        errors_lbl.pack()

        basics = tk.Frame(win)
        basics.pack(fill="x", padx=8)
        etype = tk.StringVar(value=form.encounter_type)
        start = tk.StringVar(); end = tk.StringVar()
        tk.Label(basics, text="Tipo *").grid(row=0, column=0, padx=4)
        ttk.Combobox(basics, values=ENCOUNTER_TYPES, textvariable=etype, state="readonly",
                     width=18).grid(row=0, column=1, padx=4)
        tk.Label(basics, text="Inicio * (YYYY-MM-DDTHH:MM)").grid(row=0, column=2, padx=4)
        tk.Entry(basics, textvariable=start, width=18).grid(row=0, column=3, padx=4)
        tk.Label(basics, text="Fin").grid(row=0, column=4, padx=4)
        tk.Entry(basics, textvariable=end, width=18).grid(row=0, column=5, padx=4)

        nb = ttk.Notebook(win)
        nb.pack(fill="both", expand=True, padx=8, pady=6)

        def section(title):
            frame = tk.Frame(nb)
            nb.add(frame, text=title)
            inputs = tk.Frame(frame)
            inputs.pack(fill="x", pady=4)
            lb = tk.Listbox(frame, font=("Consolas", 10), height=8)
            lb.pack(fill="both", expand=True, pady=4)
            return inputs, lb

        def fill(lb, lines):
            lb.delete(0, tk.END)
            for line in lines:
                lb.insert(tk.END, line)

        def remover(lb, remove_fn, refresh_fn):
            def do():
                sel = lb.curselection()
                if sel:
                    remove_fn(sel[0])
                    refresh_fn()
            return do

        # observations
        obs_in, obs_lb = section("Observaciones")
        obs_code = CodeField(obs_in, search_loinc, self.runner, error_message="Error al buscar códigos LOINC")
        obs_method = tk.StringVar(); obs_unit = tk.StringVar(); obs_value = tk.StringVar()
        tk.Label(obs_in, text="LOINC").grid(row=0, column=0)
        obs_code.grid(0, 1)
        for c, (label, var) in enumerate((("Método", obs_method), ("Unidad", obs_unit), ("Valor", obs_value))):
            tk.Label(obs_in, text=label).grid(row=0, column=2 + c * 2)
            tk.Entry(obs_in, textvariable=var, width=14).grid(row=0, column=3 + c * 2, padx=4)

        def refresh_obs():
            fill(obs_lb, [f"{n or o.loinc_code} | {o.method} | {o.value} {o.unit_of_measure}"
                          for o, n in zip(form.observations, form.observation_names)])

        def add_obs():
            if form.add_observation(obs_code.var.get().strip(), obs_method.get().strip(),
                                    obs_unit.get().strip(), obs_value.get().strip(), obs_code.name):
                obs_code.clear()
                for v in (obs_method, obs_unit, obs_value):
                    v.set("")
                refresh_obs()

        tk.Button(obs_in, text="Agregar", command=add_obs).grid(row=0, column=8, padx=6)
        tk.Button(obs_in, text="Quitar", command=remover(obs_lb, form.remove_observation, refresh_obs)
                  ).grid(row=0, column=9, padx=6)

        # medications
        med_in, med_lb = section("Medicamentos")
        med_code = CodeField(med_in, search_snomed, self.runner, error_message="Error al buscar medicamentos")
        med_method = tk.StringVar(); med_unit = tk.StringVar(); med_value = tk.StringVar()
        tk.Label(med_in, text="SNOMED").grid(row=0, column=0)
        med_code.grid(0, 1)
        for c, (label, var) in enumerate((("Vía", med_method), ("Unidad", med_unit), ("Dosis", med_value))):
            tk.Label(med_in, text=label).grid(row=0, column=2 + c * 2)
            tk.Entry(med_in, textvariable=var, width=14).grid(row=0, column=3 + c * 2, padx=4)

        def refresh_med():
            fill(med_lb, [f"{n or m.loinc_code} | {m.method} | {m.value} {m.unit_of_measure}"
                          for m, n in zip(form.medications, form.medication_names)])

        def add_med():
            if form.add_medication(med_code.var.get().strip(), med_method.get().strip(),
                                   med_unit.get().strip(), med_value.get().strip(), med_code.name):
                med_code.clear()
                for v in (med_method, med_unit, med_value):
                    v.set("")
                refresh_med()

        tk.Button(med_in, text="Agregar", command=add_med).grid(row=0, column=8, padx=6)
        tk.Button(med_in, text="Quitar", command=remover(med_lb, form.remove_medication, refresh_med)
                  ).grid(row=0, column=9, padx=6)

        # diagnoses
        diag_in, diag_lb = section("Diagnósticos")
        diag_code = CodeField(diag_in, search_snomed, self.runner, error_message="Error al buscar diagnósticos")
        diag_desc = tk.StringVar(); diag_status = tk.StringVar(value=DIAGNOSIS_STATUSES[0])
        tk.Label(diag_in, text="SNOMED").grid(row=0, column=0)
        diag_code.grid(0, 1)
        tk.Label(diag_in, text="Descripción").grid(row=0, column=2)
        tk.Entry(diag_in, textvariable=diag_desc, width=28).grid(row=0, column=3, padx=4)
        tk.Label(diag_in, text="Estado").grid(row=0, column=4)
        ttk.Combobox(diag_in, values=DIAGNOSIS_STATUSES, textvariable=diag_status, state="readonly",
                     width=12).grid(row=0, column=5, padx=4)

        def refresh_diag():
            fill(diag_lb, [f"{n or d.diagnosis_code} | {d.description} | {d.status}"
                           for d, n in zip(form.diagnoses, form.diagnosis_names)])

        def add_diag():
            if form.add_diagnosis(diag_desc.get().strip(), diag_code.var.get().strip(),
                                  diag_status.get().strip(), diag_code.name):
                diag_code.clear()
                diag_desc.set("")
                refresh_diag()

        tk.Button(diag_in, text="Agregar", command=add_diag).grid(row=0, column=6, padx=6)
        tk.Button(diag_in, text="Quitar", command=remover(diag_lb, form.remove_diagnosis, refresh_diag)
                  ).grid(row=0, column=7, padx=6)

        # allergies
        alg_in, alg_lb = section("Alergias")
        alg_desc = tk.StringVar(); alg_active = tk.BooleanVar(value=True)
        tk.Label(alg_in, text="Descripción").grid(row=0, column=0)
        tk.Entry(alg_in, textvariable=alg_desc, width=32).grid(row=0, column=1, padx=4)
        tk.Checkbutton(alg_in, text="Activa", variable=alg_active).grid(row=0, column=2, padx=4)

        def refresh_alg():
            fill(alg_lb, [f"{a.description} | {'activa' if a.active else 'inactiva'}" for a in form.allergies])

        def add_alg():
            if form.add_allergy(alg_desc.get().strip(), alg_active.get()):
                alg_desc.set("")
                alg_active.set(True)
                refresh_alg()

        tk.Button(alg_in, text="Agregar", command=add_alg).grid(row=0, column=3, padx=6)
        tk.Button(alg_in, text="Quitar", command=remover(alg_lb, form.remove_allergy, refresh_alg)
                  ).grid(row=0, column=4, padx=6)

        # submit
        submit_btn = tk.Button(win, text="Crear encuentro", width=18, bg="#4CAF50", fg="#fff")
        submit_btn.pack(pady=8)

        def do_submit():
            form.encounter_type = etype.get()
            form.start_date = start.get().strip()
            form.end_date = end.get().strip()
            if not form.validate():
                errors_lbl.config(text="Errores de validación:\n" + "\n".join(f"- {e}" for e in form.errors))
                return
            errors_lbl.config(text="")
            submit_btn.config(state="disabled", text="Creando...")

            def done(ok):
                submit_btn.config(state="normal", text="Crear encuentro")
                if not ok:
                    messagebox.showerror("Error al crear el encuentro", form.submit_error)
                    return
                messagebox.showinfo("Encuentro creado",
                                    "El encuentro clínico y todos sus recursos relacionados han sido creados.")
                win.destroy()
                if on_created:
                    on_created()

            self._background(form.submit, done, title="Error al crear el encuentro")

        submit_btn.config(command=do_submit)

    # ------------------ Doctors ------------------
    def open_doctors(self):
        win, top, lb = self._make_page("Médicos")
        vm = self.doctors
        if not vm.entities:
            vm.load()

        headers = ["id", "nombre", "especialidad", "matrícula", "email", "teléfono", "hospital"]
        fields = ["name", "specialty", "license_number", "email", "phone", "hospital"]

        def rows():
            return [(d.id, d.name, d.specialty, d.license_number, d.email, d.phone, d.hospital)
                    for d in vm.entities]

        self._crud_bar(top, lb, vm, headers, fields, rows)
        self._fill_with_headers(lb, headers, rows())

    # ------------------ Organizations ------------------
    def open_organizations(self):
        win, top, lb = self._make_page("Organizaciones")
        vm = self.organizations
        if not vm.entities:
            vm.load()

        headers = ["id", "nombre", "tipo", "dirección", "teléfono", "email", "web", "licencia", "áreas",
                   "cuidadores"]
        fields = ["name", "type", "address", "phone", "email", "website", "license_number"]

        def rows():
            return [(o.id, o.name, o.type, o.address, o.phone, o.email, o.website, o.license_number,
                     ", ".join(a.name for a in o.areas), len(o.caregivers))
                    for o in vm.entities]

        self._crud_bar(top, lb, vm, headers, fields, rows)
        self._fill_with_headers(lb, headers, rows())

    def _crud_bar(self, top, lb, vm, headers, fields, rows):
        """Add / update / delete rows of an in-memory view-model, one entry per field."""
        tk.Label(top, text="Nuevo / actualizar:").grid(row=0, column=0, padx=4)
        vars_ = {}
        for i, f in enumerate(fields):
            tk.Label(top, text=f).grid(row=0, column=1 + i * 2, padx=2)
            vars_[f] = tk.StringVar()
            tk.Entry(top, textvariable=vars_[f], width=14).grid(row=0, column=2 + i * 2, padx=2)

        def values(only_filled=False):
            vals = {f: v.get().strip() for f, v in vars_.items()}
            return {f: v for f, v in vals.items() if v} if only_filled else vals

        def selected_id():
            i = self._row_index(lb)
            if i is None or i >= len(vm.entities):
                raise ValueError("Seleccione una fila")
            vm.select(vm.entities[i])
            return vm.selected.id

        def do_add():
            if not vars_["name"].get().strip():
                raise ValueError("name is required")
            vm.add(**values())

        col = 2 + len(fields) * 2
        tk.Button(top, text="Agregar",
                  command=lambda: self._add(do_add, lb, rows, headers)).grid(row=0, column=col, padx=6)
        tk.Button(top, text="Actualizar seleccionado",
                  command=lambda: self._add(lambda: vm.update(selected_id(), **values(only_filled=True)),
                                            lb, rows, headers)).grid(row=1, column=col, padx=6)
        tk.Button(top, text="Eliminar seleccionado",
                  command=lambda: self._add(lambda: vm.delete(selected_id()), lb, rows, headers)
                  ).grid(row=2, column=col, padx=6)


def main(start_route: str = "/"):
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")
    MainInterface(start_route)


if __name__ == "__main__":
    import sys
    main(sys.argv[1] if len(sys.argv) > 1 else "/")
