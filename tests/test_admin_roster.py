import json

import httpx
import pytest

from squad_stats.models.admin import AdminListSource, AdminRecord, SourceKind
from squad_stats.services.admin_roster import AdminListLoader, RosterReconciler
from squad_stats.services.pacing import Pacer
from squad_stats.services.roster_store import RosterStore
from squad_stats.utils.exceptions import SourceUnavailableError

STEAM_A = '76500000000000001'
STEAM_B = '76500000000000002'
EOS_C = '0123456789abcdef0123456789abcdef'


@pytest.fixture
def install_root(tmp_path):
    root = tmp_path / 'squad'
    (root / 'config').mkdir(parents=True)
    return root


def write_list(install_root, name, text):
    (install_root / 'config' / name).write_text(text, encoding='utf-8')
    return AdminListSource(SourceKind.LOCAL, f'config/{name}')


@pytest.fixture
def reconciler(api, data_dir, install_root):
    return RosterReconciler(
        api,
        store=RosterStore(data_dir),
        loader=AdminListLoader(install_root),
        pacing=0,
    )


@pytest.mark.asyncio
async def test_local_list_produces_admin_record(reconciler, stats_service, install_root):
    source = write_list(install_root, 'Admins.cfg', "Group=1:canseeadminchat\nAdmin=76500000000000001:1")
    
    roster = await reconciler.build_roster([source])
    
    assert list(roster) == [STEAM_A]
    assert roster[STEAM_A].is_admin
    assert not roster[STEAM_A].is_reserve
    
    report = await reconciler.reconcile([source])
    
    assert report.upserted == [STEAM_A]
    assert stats_service.writes() == [
        ('PATCH', 'players', {'steamID': STEAM_A, 'isAdmin': 1, 'isReserve': 0}),
    ]


@pytest.mark.asyncio
async def test_identity_in_two_sources_is_merged(reconciler, stats_service, install_root):
    admins = write_list(install_root, 'Admins.cfg', f"Group=Mods:canseeadminchat\nAdmin={STEAM_A}:Mods\n")
    whitelist = write_list(
        install_root, 'Whitelist.cfg', f"Group=VIP:reserve\nAdmin={STEAM_A}:VIP // @player_one\n"
    )
    
    roster = await reconciler.build_roster([admins, whitelist])
    
    record = roster[STEAM_A]
    assert record.permissions == frozenset({'canseeadminchat', 'reserve'})
    assert record.is_admin and record.is_reserve
    assert record.discord_handle == 'player_one'
    
    await reconciler.reconcile([admins, whitelist])
    assert stats_service.writes() == [
        ('PATCH', 'players', {
            'steamID': STEAM_A, 'isAdmin': 1, 'isReserve': 1, 'discordUsername': 'player_one',
        }),
    ]


@pytest.mark.asyncio
async def test_later_missing_handle_keeps_earlier_one(reconciler, install_root):
    first = write_list(install_root, 'a.cfg', f"Group=G:reserve\nAdmin={STEAM_A}:G @handle\n")
    second = write_list(install_root, 'b.cfg', f"Group=G:kick\nAdmin={STEAM_A}:G\n")
    
    roster = await reconciler.build_roster([first, second])
    
    assert roster[STEAM_A].discord_handle == 'handle'
    assert roster[STEAM_A].permissions == frozenset({'reserve', 'kick'})


@pytest.mark.asyncio
async def test_group_names_are_scoped_per_source(reconciler, install_root):
    first = write_list(install_root, 'a.cfg', f"Group=1:canseeadminchat\nAdmin={STEAM_A}:1\n")
    second = write_list(install_root, 'b.cfg', f"Group=1:reserve\nAdmin={STEAM_B}:1\n")
    
    roster = await reconciler.build_roster([first, second])
    
    assert roster[STEAM_A].permissions == frozenset({'canseeadminchat'})
    assert roster[STEAM_B].permissions == frozenset({'reserve'})


@pytest.mark.asyncio
async def test_unchanged_source_issues_no_calls_on_second_pass(reconciler, stats_service, install_root):
    source = write_list(
        install_root, 'Admins.cfg',
        f"Group=A:canseeadminchat,reserve\nAdmin={STEAM_A}:A\nAdmin={EOS_C}:A @eos_admin\n",
    )
    
    first = await reconciler.reconcile([source])
    assert len(first.upserted) == 2
    stats_service.calls.clear()
    
    second = await reconciler.reconcile([source])
    
    assert second.calls == 0
    assert second.unchanged == 2
    assert stats_service.calls == []


@pytest.mark.asyncio
async def test_changed_permissions_are_pushed_again(reconciler, stats_service, install_root):
    source = write_list(install_root, 'Admins.cfg', f"Group=A:reserve\nAdmin={STEAM_A}:A\n")
    await reconciler.reconcile([source])
    stats_service.calls.clear()
    
    write_list(install_root, 'Admins.cfg', f"Group=A:reserve,canseeadminchat\nAdmin={STEAM_A}:A\n")
    report = await reconciler.reconcile([source])
    
    assert report.upserted == [STEAM_A]
    assert stats_service.writes()[0][2]['isAdmin'] == 1


@pytest.mark.asyncio
async def test_vanished_admin_is_removed_once(reconciler, stats_service, install_root, data_dir):
    source = write_list(
        install_root, 'Admins.cfg', f"Group=A:canseeadminchat\nAdmin={STEAM_A}:A\nAdmin={EOS_C}:A\n"
    )
    await reconciler.reconcile([source])
    stats_service.calls.clear()
    
    write_list(install_root, 'Admins.cfg', f"Group=A:canseeadminchat\nAdmin={STEAM_A}:A\n")
    report = await reconciler.reconcile([source])
    
    assert report.removed == [EOS_C]
    assert stats_service.writes() == [('PATCH', 'players', {'eosID': EOS_C, 'removeAdmin': 1})]
    persisted = json.loads((data_dir / 'admins.json').read_text())
    assert list(persisted) == [STEAM_A]


@pytest.mark.asyncio
async def test_rejected_upsert_is_retried_next_pass(reconciler, stats_service, install_root, data_dir):
    source = write_list(install_root, 'Admins.cfg', f"Group=A:reserve\nAdmin={STEAM_A}:A\n")
    stats_service.bodies[('PATCH', 'players')] = {'successStatus': 'Error', 'successMessage': 'nope'}
    
    report = await reconciler.reconcile([source])
    
    assert report.failed == [STEAM_A]
    assert json.loads((data_dir / 'admins.json').read_text()) == {}
    
    del stats_service.bodies[('PATCH', 'players')]
    stats_service.calls.clear()
    report = await reconciler.reconcile([source])
    
    assert report.upserted == [STEAM_A]
    assert len(stats_service.writes()) == 1


@pytest.mark.asyncio
async def test_failed_removal_keeps_admin_in_snapshot(reconciler, stats_service, install_root, data_dir):
    source = write_list(install_root, 'Admins.cfg', f"Group=A:reserve\nAdmin={STEAM_A}:A\n")
    await reconciler.reconcile([source])
    
    write_list(install_root, 'Admins.cfg', "Group=A:reserve\n")
    stats_service.status = 500
    report = await reconciler.reconcile([source])
    
    assert report.failed == [STEAM_A]
    assert STEAM_A in json.loads((data_dir / 'admins.json').read_text())


@pytest.mark.asyncio
async def test_unavailable_source_is_skipped(reconciler, stats_service, install_root):
    missing = AdminListSource(SourceKind.LOCAL, 'config/Missing.cfg')
    present = write_list(install_root, 'Admins.cfg', f"Group=A:reserve\nAdmin={STEAM_A}:A\n")
    
    report = await reconciler.reconcile([missing, present])
    
    assert report.sources_failed == ['config/Missing.cfg']
    assert report.sources_loaded == 1
    assert report.upserted == [STEAM_A]


@pytest.mark.asyncio
async def test_admins_of_unavailable_source_are_removed(reconciler, stats_service, install_root):
    remote_admins = write_list(install_root, 'Remote.cfg', f"Group=A:reserve\nAdmin={STEAM_B}:A\n")
    local = write_list(install_root, 'Admins.cfg', f"Group=A:reserve\nAdmin={STEAM_A}:A\n")
    await reconciler.reconcile([remote_admins, local])
    stats_service.calls.clear()
    
    (install_root / 'config' / 'Remote.cfg').unlink()
    report = await reconciler.reconcile([remote_admins, local])
    
    assert report.sources_failed == ['config/Remote.cfg']
    assert report.removed == [STEAM_B]
    assert stats_service.writes() == [('PATCH', 'players', {'steamID': STEAM_B, 'removeAdmin': 1})]
    assert STEAM_B not in reconciler.store
    assert STEAM_A in reconciler.store


@pytest.mark.asyncio
async def test_injected_collaborators_are_used(api, data_dir, install_root):
    store = RosterStore(data_dir)
    loader = AdminListLoader(install_root)
    
    reconciler = RosterReconciler(api, store=store, loader=loader)
    
    assert len(store) == 0
    assert reconciler.store is store
    assert reconciler.loader is loader


@pytest.mark.asyncio
async def test_upserts_are_paced(api, stats_service, data_dir, install_root, clock):
    reconciler = RosterReconciler(
        api,
        store=RosterStore(data_dir),
        loader=AdminListLoader(install_root),
        pacer=Pacer(1, sleep=clock.sleep, clock=clock),
    )
    source = write_list(
        install_root, 'Admins.cfg',
        f"Group=A:reserve\nAdmin={STEAM_A}:A\nAdmin={STEAM_B}:A\nAdmin={EOS_C}:A\n",
    )
    
    report = await reconciler.reconcile([source])
    
    assert report.upserted == [STEAM_A, STEAM_B, EOS_C]
    assert clock.sleeps == [1, 1]
    assert (data_dir / 'admins.json').exists()


@pytest.mark.asyncio
async def test_unparseable_line_does_not_stop_pass(reconciler, install_root):
    source = write_list(
        install_root, 'Admins.cfg',
        f"Group=A:reserve\nAdmin={STEAM_B}:Nope\nAdmin={STEAM_A}:A\n",
    )
    
    report = await reconciler.reconcile([source])
    
    assert report.parse_errors == 1
    assert report.upserted == [STEAM_A]


@pytest.mark.asyncio
async def test_remote_source_is_fetched_over_http():
    def handler(request):
        if request.url.path == '/admins.cfg':
            return httpx.Response(200, text=f"Group=A:reserve\nAdmin={STEAM_A}:A\n")
        return httpx.Response(404)
    
    loader = AdminListLoader('.', transport=httpx.MockTransport(handler))
    
    text = await loader.load(AdminListSource(SourceKind.REMOTE, 'http://lists.test/admins.cfg'))
    assert STEAM_A in text
    
    with pytest.raises(SourceUnavailableError):
        await loader.load(AdminListSource(SourceKind.REMOTE, 'http://lists.test/other.cfg'))


def test_roster_file_format(data_dir):
    store = RosterStore(data_dir)
    store.load()
    store.put(STEAM_A, AdminRecord.create(['Reserve', 'canseeadminchat'], 'handle'))
    store.put(EOS_C, AdminRecord.create(['reserve']))
    
    persisted = json.loads((data_dir / 'admins.json').read_text())
    
    assert persisted == {
        STEAM_A: {'canseeadminchat': True, 'reserve': True, 'discordUsername': 'handle'},
        EOS_C: {'reserve': True, 'discordUsername': None},
    }
    assert RosterStore(data_dir).load() == store.snapshot()


def test_corrupt_roster_file_starts_empty(data_dir):
    (data_dir / 'admins.json').write_text('{not json')
    
    assert RosterStore(data_dir).load() == {}
    assert len(list(data_dir.glob('admins.json.*.corrupt'))) == 1
