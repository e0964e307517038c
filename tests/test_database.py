from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from gestor.database import Database, RecordNotFound
from gestor.models import (
    Celula,
    Encontro,
    MembroCelula,
    Rede,
    Supervisor,
    to_json,
)


@pytest.fixture
def db():
    return Database("sqlite://")


def test_create_and_get_celula(db):
    created = db.create_celula(Celula(nome="Vida", lider="Ana", qtd_membros=8))
    assert created.id > 0
    assert created.created_at is not None
    fetched = db.get_celula_by_id(created.id)
    assert fetched.nome == "Vida"
    assert fetched.lider == "Ana"
    assert fetched.qtd_membros == 8
    assert fetched.created_at == created.created_at


def test_get_celulas_lists_all(db):
    names = ["A", "B", "C"]
    for name in names:
        db.create_celula(Celula(nome=name))
    assert [c.nome for c in db.get_celulas()] == names
    assert [item["nome"] for item in to_json(db.get_celulas())] == names


def test_get_missing_celula_raises(db):
    with pytest.raises(RecordNotFound):
        db.get_celula_by_id(999)


def test_create_with_existing_id_fails(db):
    db.create_celula(Celula(id=5, nome="A"))
    with pytest.raises(IntegrityError):
        db.create_celula(Celula(id=5, nome="B"))


def test_update_celula_replaces_fields_and_keeps_created_at(db):
    created = db.create_celula(Celula(nome="Velha", lider="Ana"))
    updated = db.update_celula(Celula(id=created.id, nome="Nova"))
    assert updated.id == created.id
    fetched = db.get_celula_by_id(created.id)
    assert fetched.nome == "Nova"
    assert fetched.lider == ""
    assert fetched.created_at == created.created_at
    assert fetched.updated_at >= created.updated_at


def test_update_without_id_creates(db):
    saved = db.update_celula(Celula(nome="Nova"))
    assert saved.id > 0
    assert db.get_celula_by_id(saved.id).nome == "Nova"


def test_update_with_unknown_id_inserts(db):
    db.update_rede(Rede(id=42, nome="Jovens"))
    redes = db.get_redes()
    assert [(r.id, r.nome) for r in redes] == [(42, "Jovens")]


def test_delete_celula_is_soft(db):
    keep = db.create_celula(Celula(nome="Fica"))
    gone = db.create_celula(Celula(nome="Sai"))
    db.delete_celula(gone.id)
    with pytest.raises(RecordNotFound):
        db.get_celula_by_id(gone.id)
    assert [c.id for c in db.get_celulas()] == [keep.id]


def test_delete_missing_is_not_an_error(db):
    db.delete_celula(12345)
    assert db.get_celulas() == []


def test_membros_are_filtered_by_celula(db):
    first = db.create_celula(Celula(nome="A"))
    second = db.create_celula(Celula(nome="B"))
    rui = db.adicionar_membro_celula(MembroCelula(id_celula=first.id, nome="Rui", batizado=True))
    db.adicionar_membro_celula(MembroCelula(id_celula=second.id, nome="Eva"))
    membros = db.get_membros_celula(first.id)
    assert [m.nome for m in membros] == ["Rui"]
    assert membros[0].batizado is True
    assert db.get_membro_celula_by_id(rui.id).nome == "Rui"


def test_remover_membro(db):
    membro = db.adicionar_membro_celula(MembroCelula(id_celula=1, nome="Rui"))
    db.remover_membro_celula(membro.id)
    assert db.get_membros_celula(1) == []
    with pytest.raises(RecordNotFound):
        db.get_membro_celula_by_id(membro.id)


def test_create_encontro_records_presences(db):
    when = datetime(2024, 5, 1, 22, 30, tzinfo=timezone.utc)
    encontro = db.create_encontro(
        Encontro(id_celula=7, data=when, pregador="Lia", qtd_presentes=2, oferta_arrecadada=12.5),
        [3, 4],
    )
    bodies = db.get_encontro_by_id_celula(7)
    assert len(bodies) == 1
    body = bodies[0]
    assert body.id == encontro.id
    assert body.data == when
    assert body.pregador == "Lia"
    assert body.oferta_arrecadada == 12.5
    assert body.membros_presentes == [3, 4]


def test_encontro_without_presences_has_no_member_list(db):
    db.create_encontro(Encontro(id_celula=1), [])
    assert db.get_encontro_by_id_celula(1)[0].membros_presentes is None
    assert db.get_encontro_by_id_celula(2) == []


def test_encontros_by_celula_are_newest_first_and_limited(db):
    ids = [db.create_encontro(Encontro(id_celula=1), None).id for _ in range(12)]
    db.create_encontro(Encontro(id_celula=2), None)
    bodies = db.get_encontro_by_id_celula(1)
    assert [b.id for b in bodies] == sorted(ids, reverse=True)[:10]


def test_update_and_delete_encontro(db):
    encontro = db.create_encontro(Encontro(id_celula=1, pregador="Lia"), None)
    db.update_encontro(Encontro(id=encontro.id, id_celula=1, pregador="Jo"))
    assert [e.pregador for e in db.get_encontros()] == ["Jo"]
    db.delete_encontro(encontro.id)
    assert db.get_encontros() == []
    assert db.get_encontro_by_id_celula(1) == []


def test_redes_crud(db):
    rede = db.create_rede(Rede(nome="Jovens", label="jovens"))
    db.update_rede(Rede(id=rede.id, nome="Adolescentes", label="teens"))
    assert [(r.nome, r.label) for r in db.get_redes()] == [("Adolescentes", "teens")]
    db.delete_rede(rede.id)
    assert db.get_redes() == []


def test_supervisores_crud(db):
    supervisor = db.create_supervisor(
        Supervisor(nome="Marta", email="marta@example.com", telefone="")
    )
    assert db.get_supervisor_by_id(supervisor.id).email == "marta@example.com"
    db.update_supervisor(Supervisor(id=supervisor.id, nome="Marta S."))
    assert [s.nome for s in db.get_supervisores()] == ["Marta S."]
    db.delete_supervisor(supervisor.id)
    with pytest.raises(RecordNotFound):
        db.get_supervisor_by_id(supervisor.id)


def test_migrate_again_keeps_data(db):
    db.create_rede(Rede(nome="Casais"))
    db.migrate()
    assert [r.nome for r in db.get_redes()] == ["Casais"]


def test_timestamps_come_back_timezone_aware(db):
    rede = db.create_rede(Rede(nome="X"))
    fetched = db.get_redes()[0]
    assert fetched.created_at.tzinfo is not None
    assert fetched.created_at == rede.created_at
    assert fetched.deleted_at is None